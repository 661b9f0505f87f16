"""
Module de configuration du rapport machine

Ce module gère la configuration du rapport, incluant :
- Lecture du fichier de configuration INI
- Validation des paramètres
- Valeurs par défaut
- Listes de sondes ignorées en mode rapide, par plateforme
"""

import os
import sys
import configparser
from typing import Dict, Any, Optional, FrozenSet

from .errors import ConfigError
from .models import CollectMode


DEFAULT_TITLE = "SHAUGHNESSY V DEVELOPMENT INC."
DEFAULT_SUBTITLE = "TR-300 MACHINE REPORT"

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class ReportConfig:
    """
    Gestionnaire de configuration du rapport machine

    Centralise les paramètres d'affichage, de collecte et de logging.
    Les options de ligne de commande sont appliquées par-dessus via set().
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialise la configuration

        Args:
            config_file: Chemin vers le fichier de configuration (optionnel)
        """
        self.config = configparser.ConfigParser()
        self.config_file = config_file or self._get_default_config_path()
        self.loaded = False

        self._set_defaults()
        self._load_config()

    def _get_default_config_path(self) -> str:
        """
        Détermine le chemin par défaut du fichier de configuration selon la plateforme

        Returns:
            str: Chemin vers le fichier de configuration
        """
        if sys.platform == "win32":
            return os.path.join(
                os.environ.get("APPDATA", os.path.expanduser("~")),
                "machine-report",
                "config.ini"
            )
        else:
            base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
            return os.path.join(base, "machine-report", "config.ini")

    def _set_defaults(self):
        """
        Définit les valeurs de configuration par défaut

        Ces valeurs sont utilisées si aucun fichier n'est trouvé ou si
        certaines sections/clés sont manquantes.
        """
        # Affichage
        self.config.add_section('report')
        self.config.set('report', 'title', DEFAULT_TITLE)
        self.config.set('report', 'subtitle', DEFAULT_SUBTITLE)
        self.config.set('report', 'ascii', 'false')
        self.config.set('report', 'color', 'true')
        self.config.set('report', 'format', 'table')  # table, json

        # Collecte
        self.config.add_section('collection')
        self.config.set('collection', 'mode', 'full')  # full, fast
        self.config.set('collection', 'cpu_sample_interval_ms', '200')
        self.config.set('collection', 'command_timeout', '30')
        self.config.set('collection', 'max_dns_servers', '5')
        # Vide = liste intégrée de chaque sonde
        self.config.set('collection', 'fast_skip_linux', '')
        self.config.set('collection', 'fast_skip_macos', '')
        self.config.set('collection', 'fast_skip_windows', '')

        # Logging
        self.config.add_section('logging')
        self.config.set('logging', 'log_level', 'WARNING')
        self.config.set('logging', 'log_file', self._get_default_log_path())
        self.config.set('logging', 'max_log_size', '1048576')  # 1MB
        self.config.set('logging', 'backup_count', '3')

    def _get_default_log_path(self) -> str:
        """
        Détermine le chemin par défaut des logs selon la plateforme

        Returns:
            str: Chemin vers le fichier de log
        """
        if sys.platform == "win32":
            return os.path.join(
                os.environ.get("TEMP", "C:\\temp"),
                "machine-report.log"
            )
        else:
            return "/tmp/machine-report.log"

    def _load_config(self):
        """
        Charge la configuration depuis le fichier

        Si le fichier n'existe pas, les valeurs par défaut sont conservées.
        Un fichier illisible est signalé par une ConfigError.
        """
        if not os.path.exists(self.config_file):
            return

        try:
            self.config.read(self.config_file, encoding='utf-8')
            self.loaded = True
        except configparser.Error as e:
            raise ConfigError([f"Fichier de configuration illisible {self.config_file}: {e}"])

    def get(self, section: str, option: str, fallback: Any = None) -> str:
        """
        Récupère une valeur de configuration

        Args:
            section: Nom de la section
            option: Nom de l'option
            fallback: Valeur par défaut si non trouvée

        Returns:
            str: Valeur de configuration
        """
        return self.config.get(section, option, fallback=fallback)

    def getboolean(self, section: str, option: str, fallback: bool = False) -> bool:
        """Récupère une valeur booléenne de configuration"""
        return self.config.getboolean(section, option, fallback=fallback)

    def getint(self, section: str, option: str, fallback: int = 0) -> int:
        """Récupère une valeur entière de configuration"""
        return self.config.getint(section, option, fallback=fallback)

    def set(self, section: str, option: str, value: Any):
        """
        Définit une valeur de configuration

        Args:
            section: Nom de la section
            option: Nom de l'option
            value: Nouvelle valeur
        """
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, option, str(value))

    @property
    def collect_mode(self) -> CollectMode:
        return CollectMode.from_string(self.get('collection', 'mode', 'full'))

    def fast_skip_override(self, platform_key: str) -> Optional[FrozenSet[str]]:
        """
        Liste de sondes ignorées en mode rapide définie par l'utilisateur

        Args:
            platform_key: 'linux', 'macos' ou 'windows'

        Returns:
            frozenset ou None si la liste intégrée doit être utilisée
        """
        raw = self.get('collection', f'fast_skip_{platform_key}', '')
        if not raw or not raw.strip():
            return None
        return frozenset(item.strip() for item in raw.split(',') if item.strip())

    def get_report_config(self) -> Dict[str, Any]:
        """
        Récupère la configuration d'affichage

        Returns:
            dict: Configuration d'affichage
        """
        return {
            'title': self.get('report', 'title', DEFAULT_TITLE),
            'subtitle': self.get('report', 'subtitle', DEFAULT_SUBTITLE),
            'ascii': self.getboolean('report', 'ascii', False),
            'color': self.getboolean('report', 'color', True),
            'format': self.get('report', 'format', 'table'),
        }

    def get_collection_config(self) -> Dict[str, Any]:
        """
        Récupère la configuration de collecte

        Returns:
            dict: Configuration de collecte
        """
        return {
            'mode': self.collect_mode,
            'cpu_sample_interval_ms': self.getint('collection', 'cpu_sample_interval_ms', 200),
            'command_timeout': self.getint('collection', 'command_timeout', 30),
            'max_dns_servers': self.getint('collection', 'max_dns_servers', 5),
        }

    def get_logging_config(self) -> Dict[str, Any]:
        """
        Récupère la configuration de logging

        Returns:
            dict: Configuration de logging
        """
        return {
            'log_level': self.get('logging', 'log_level', 'WARNING'),
            'log_file': self.get('logging', 'log_file', ''),
            'max_log_size': self.getint('logging', 'max_log_size', 1048576),
            'backup_count': self.getint('logging', 'backup_count', 3),
        }

    def validate(self):
        """
        Valide la configuration courante

        Raises:
            ConfigError: Liste des erreurs rencontrées
        """
        errors = []

        mode = self.get('collection', 'mode')
        if str(mode).strip().lower() not in ('full', 'fast'):
            errors.append("Mode de collecte invalide (doit être: full, fast)")

        output_format = self.get('report', 'format')
        if output_format not in ('table', 'json'):
            errors.append("Format de sortie invalide (doit être: table, json)")

        log_level = self.get('logging', 'log_level')
        if str(log_level).upper() not in LOG_LEVELS:
            errors.append("Niveau de log invalide")

        for option, minimum, maximum in (('cpu_sample_interval_ms', 0, 5000),
                                         ('command_timeout', 1, 600),
                                         ('max_dns_servers', 0, 5)):
            try:
                value = self.getint('collection', option)
            except ValueError:
                errors.append(f"{option} doit être un entier")
                continue
            if not (minimum <= value <= maximum):
                errors.append(f"{option} doit être entre {minimum} et {maximum}")

        for option in ('ascii', 'color'):
            try:
                self.getboolean('report', option)
            except ValueError:
                errors.append(f"{option} doit être un booléen")

        if errors:
            raise ConfigError(errors)
