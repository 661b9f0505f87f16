"""
Collecteur de session utilisateur

Utilisateur courant, répertoires, shell, terminal et dernière connexion.
"""

import os
import getpass

from .base import BaseCollector
from ..core.models import CollectMode, SessionInfo


class SessionCollector(BaseCollector):
    """
    Collecteur de session

    La dernière connexion n'est ignorée en mode rapide que sur les
    plateformes où sa seule méthode est lente (voir FAST_MODE_SKIPS).
    """

    def __init__(self, config, logger, probe):
        super().__init__(config, logger, probe.runner)
        self.probe = probe

    def collect(self, mode: CollectMode) -> SessionInfo:
        """
        Collecte les informations de session

        Args:
            mode: Mode de collecte

        Returns:
            SessionInfo: Informations de session
        """
        self._start_collection()

        username = self._username()
        last_login = None
        if not self.probe.skips('last_login', mode):
            last_login = self._safe_execute(lambda: self.probe.last_login(username), "Dernière connexion")

        info = SessionInfo(
            username=username,
            home_dir=os.path.expanduser('~'),
            shell=os.environ.get('SHELL') or os.environ.get('COMSPEC') or "Unknown",
            current_dir=self._safe_execute(os.getcwd, "Répertoire courant", ""),
            terminal=self._terminal(),
            last_login=last_login[0] if last_login else None,
            last_login_ip=last_login[1] if last_login else None,
        )

        self._end_collection()
        return info

    def _username(self) -> str:
        username = self._safe_execute(getpass.getuser, "Nom d'utilisateur")
        return username or os.environ.get('USER') or os.environ.get('USERNAME') or "Unknown"

    def _terminal(self) -> str:
        if os.environ.get('TERM_PROGRAM'):
            return os.environ['TERM_PROGRAM']
        if os.environ.get('WT_SESSION'):
            return "Windows Terminal"
        if os.environ.get('TERM'):
            return os.environ['TERM']
        if os.environ.get('ConEmuPID'):
            return "ConEmu"
        return "Console" if os.name == 'nt' else "Unknown"
