"""
Installation dans les profils de shell

Ajoute (ou retire) un bloc délimité dans les profils de l'utilisateur :
- ~/.bashrc et ~/.zshrc sous Linux et macOS
- Le profil PowerShell sous Windows

Le bloc définit l'alias `report` et lance le rapport en mode rapide à
l'ouverture d'un shell interactif. L'opération est idempotente.
"""

import os
import sys
from pathlib import Path
from typing import List, Optional

from .errors import PlatformUnsupportedError


MARKER_START = "# Machine Report"
MARKER_END = "# End Machine Report"

COMMAND = "machine-report"

UNIX_BLOCK = f"""{MARKER_START}
alias report='{COMMAND}'

# Auto-run on interactive shell
if [[ $- == *i* ]]; then
    {COMMAND} --fast
fi
{MARKER_END}"""

POWERSHELL_BLOCK = f"""{MARKER_START}
Set-Alias -Name report -Value {COMMAND}

# Auto-run on interactive shell
if ($Host.Name -eq 'ConsoleHost') {{
    {COMMAND} --fast
}}
{MARKER_END}"""


def remove_block(content: str) -> str:
    """
    Retire le bloc délimité et compacte les lignes vides consécutives

    Args:
        content: Contenu du profil

    Returns:
        str: Contenu sans le bloc
    """
    kept = []
    inside = False
    for line in content.splitlines():
        stripped = line.strip()
        if stripped == MARKER_START:
            inside = True
            continue
        if inside:
            if stripped == MARKER_END:
                inside = False
            continue
        if not stripped and kept and not kept[-1].strip():
            continue
        kept.append(line)
    return "\n".join(kept).strip("\n")


def add_block(content: str, block: str) -> str:
    """Remplace tout bloc existant par `block`, ajouté en fin de fichier"""
    cleaned = remove_block(content)
    if not cleaned:
        return block + "\n"
    return f"{cleaned}\n\n{block}\n"


class ProfileInstaller:
    """
    Gestionnaire d'installation dans les profils de shell

    Args:
        logger: Instance de ReportLogger
        home: Répertoire personnel (celui de l'utilisateur par défaut)
        platform_name: Valeur de sys.platform (courante par défaut)
    """

    def __init__(self, logger, home: Optional[Path] = None, platform_name: Optional[str] = None):
        self.logger = logger
        self.home = Path(home) if home else Path.home()
        self.platform_name = platform_name or sys.platform

    @property
    def is_windows(self) -> bool:
        return self.platform_name == "win32"

    def _check_platform(self, operation: str):
        if not (self.is_windows or self.platform_name == "darwin" or self.platform_name.startswith("linux")):
            raise PlatformUnsupportedError(self.platform_name, operation)

    def profile_paths(self) -> List[Path]:
        """
        Profils concernés par l'installation

        Returns:
            list: Profils existants; ~/.bashrc si aucun n'existe (Unix)
        """
        if self.is_windows:
            documents = Path(os.environ.get("USERPROFILE", str(self.home))) / "Documents"
            return [documents / "WindowsPowerShell" / "Microsoft.PowerShell_profile.ps1"]

        existing = [self.home / name for name in (".bashrc", ".zshrc") if (self.home / name).exists()]
        return existing or [self.home / ".bashrc"]

    def install(self) -> List[Path]:
        """
        Installe le bloc dans chaque profil

        Returns:
            list: Profils modifiés

        Raises:
            PlatformUnsupportedError: Système sans profil connu
            OSError: Profil illisible ou non inscriptible
        """
        self._check_platform("l'installation")
        block = POWERSHELL_BLOCK if self.is_windows else UNIX_BLOCK
        updated = []

        for path in self.profile_paths():
            path.parent.mkdir(parents=True, exist_ok=True)
            content = path.read_text(encoding="utf-8") if path.exists() else ""
            path.write_text(add_block(content, block), encoding="utf-8")
            self.logger.info(f"Profil mis à jour: {path}")
            updated.append(path)

        return updated

    def uninstall(self) -> List[Path]:
        """
        Retire le bloc de chaque profil qui le contient

        Returns:
            list: Profils modifiés
        """
        self._check_platform("la désinstallation")
        updated = []

        for path in self.profile_paths():
            if not path.exists():
                continue
            content = path.read_text(encoding="utf-8")
            if MARKER_START not in content:
                continue
            cleaned = remove_block(content)
            path.write_text(cleaned + "\n" if cleaned else "", encoding="utf-8")
            self.logger.info(f"Bloc retiré du profil: {path}")
            updated.append(path)

        return updated
