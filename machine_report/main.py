"""
Point d'entrée principal du rapport machine

Modes d'exécution :
- Rapport (par défaut): collecte puis affichage en tableau ou JSON
- Installation / désinstallation dans les profils de shell
"""

import re
import sys
import argparse
from typing import List, Optional

from rich.console import Console
from rich.text import Text

from . import __version__
from .core.collector import SystemReportCollector
from .core.config import ReportConfig
from .core.errors import ConfigError, MandatoryCollectorError, PlatformUnsupportedError
from .core.installer import ProfileInstaller
from .core.logger import ReportLogger
from .core.models import CollectMode
from .render.report import RenderConfig, render


# Partie remplie des barres: suivie uniquement de caractères vides puis de la bordure
BAR_FILL = re.compile(r'[█#]+(?=[░.]* [│|]$)', re.MULTILINE)


class MachineReport:
    """
    Application du rapport machine

    Assemble configuration, logging, collecte et rendu pour une exécution.
    """

    def __init__(self, config: ReportConfig, logger: ReportLogger, collector: Optional[SystemReportCollector] = None):
        self.config = config
        self.logger = logger
        self.app_logger = logger.get_logger()
        self.collector = collector or SystemReportCollector(config, logger)

    def generate(self) -> str:
        """
        Collecte et rend le rapport

        Returns:
            str: Rapport rendu

        Raises:
            MandatoryCollectorError: Échec d'un collecteur obligatoire
        """
        mode = self.config.collect_mode
        snapshot = self.collector.collect(mode)
        return render(snapshot, RenderConfig.from_config(self.config))

    def use_color(self) -> bool:
        settings = self.config.get_report_config()
        return settings['color'] and settings['format'] == 'table'

    def print_report(self, output: str, console: Optional[Console] = None):
        """
        Affiche le rapport, en couleur si le terminal le permet

        Args:
            output: Rapport rendu
            console: Console rich (stdout par défaut)
        """
        if not self.use_color():
            sys.stdout.write(output if output.endswith("\n") else output + "\n")
            return

        console = console or Console(highlight=False, soft_wrap=True, emoji=False)
        text = Text(output.rstrip("\n"))
        text.highlight_regex(BAR_FILL, "bold cyan")
        console.print(text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='machine-report',
        description='Rapport machine - Diagnostic instantané du système (OS, CPU, mémoire, disques, réseau, session)'
    )

    parser.add_argument('--ascii', action='store_true', help='Bordures ASCII au lieu des caractères Unicode')
    parser.add_argument('--json', action='store_true', help='Sortie JSON')
    parser.add_argument('--title', '-t', type=str, help='Titre personnalisé du rapport')
    parser.add_argument('--no-color', action='store_true', help='Désactive les couleurs')
    parser.add_argument('--fast', action='store_true', help='Mode rapide: ignore les sondes lentes')
    parser.add_argument('--config', '-c', type=str, help='Chemin vers le fichier de configuration')
    parser.add_argument('--install', action='store_true', help='Installe le lancement automatique dans les profils de shell')
    parser.add_argument('--uninstall', action='store_true', help='Retire le lancement automatique des profils de shell')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser


def apply_arguments(config: ReportConfig, args: argparse.Namespace):
    """Les options de ligne de commande priment sur le fichier de configuration"""
    if args.ascii:
        config.set('report', 'ascii', 'true')
    if args.json:
        config.set('report', 'format', 'json')
    if args.title:
        config.set('report', 'title', args.title)
    if args.no_color:
        config.set('report', 'color', 'false')
    if args.fast:
        config.set('collection', 'mode', CollectMode.FAST.value)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Point d'entrée principal avec gestion des arguments de ligne de commande

    Returns:
        int: Code de sortie (0 succès, 1 erreur)
    """
    args = build_parser().parse_args(argv)

    if args.install and args.uninstall:
        print("Erreur: --install et --uninstall sont exclusifs", file=sys.stderr)
        return 2

    try:
        config = ReportConfig(args.config)
        apply_arguments(config, args)
        config.validate()
    except ConfigError as e:
        print(f"Erreur de configuration: {e}", file=sys.stderr)
        return 1

    logger = ReportLogger(config)
    app_logger = logger.get_logger()

    try:
        if args.install or args.uninstall:
            installer = ProfileInstaller(logger)
            if args.install:
                paths = installer.install()
                print(f"Installé dans: {', '.join(str(path) for path in paths)}")
            else:
                paths = installer.uninstall()
                print(f"Retiré de: {', '.join(str(path) for path in paths)}" if paths else "Rien à désinstaller")
            return 0

        app = MachineReport(config, logger)
        app.print_report(app.generate())
        return 0

    except MandatoryCollectorError as e:
        app_logger.debug(f"Détail: {e.cause!r}")
        print(f"Erreur: {e}", file=sys.stderr)
        return 1
    except (PlatformUnsupportedError, OSError) as e:
        print(f"Erreur: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    finally:
        logger.close()


if __name__ == "__main__":
    sys.exit(main())
