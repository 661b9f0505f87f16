"""
Sondes spécifiques par plateforme

Ce package contient une interface unique, PlatformProbe, et une
implémentation par système d'exploitation :
- Linux (procfs, sysfs, commandes Unix)
- macOS (sysctl, system_profiler, commandes Unix)
- Windows (WMI, registre, PowerShell)

L'implémentation est choisie une seule fois au démarrage par
select_probe_class(); les collecteurs ne testent jamais sys.platform.
"""

import os
import sys
import shutil
import platform
from typing import Callable, List, Optional, Set, Tuple

from ..base import BaseCollector, CommandRunner
from ...core.errors import PlatformUnsupportedError
from ...core.models import CollectMode, PlatformInfo


LoadAverages = Tuple[float, float, float]


class PlatformProbe(BaseCollector):
    """
    Interface des sondes de plateforme

    Chaque méthode obtient un seul fait et retourne None (ou une liste vide)
    si toutes les méthodes de sa chaîne de repli échouent. Les implémentations
    par défaut couvrent les Unix génériques.
    """

    PLATFORM_KEY = 'generic'

    # Sondes lentes ignorées en mode rapide (surchargeables par configuration)
    FAST_MODE_SKIPS = frozenset()

    def __init__(self, config, logger, runner: Optional[CommandRunner] = None):
        super().__init__(config, logger, runner)
        override = config.fast_skip_override(self.PLATFORM_KEY) if config else None
        self.fast_skips = override if override is not None else self.FAST_MODE_SKIPS

    def skips(self, probe_name: str, mode: CollectMode) -> bool:
        """
        Indique si une sonde est ignorée dans ce mode

        Args:
            probe_name: Nom de la sonde (ex: 'sockets', 'gpus')
            mode: Mode de collecte

        Returns:
            bool: True si la sonde ne doit pas être exécutée
        """
        return mode == CollectMode.FAST and probe_name in self.fast_skips

    def _gated(self, probe_name: str, mode: CollectMode, func: Callable, skipped: Set[str], default=None):
        """Exécute une sonde sauf si le mode rapide l'ignore; note les sondes ignorées"""
        if self.skips(probe_name, mode):
            skipped.add(probe_name)
            return default
        return self._safe_execute(func, f"Sonde {probe_name} en échec", default)

    # Identité du système

    def os_identity(self) -> Tuple[str, str]:
        """Nom et version du système"""
        return platform.system() or "Unknown", platform.release() or "Unknown"

    def kernel(self) -> str:
        return platform.release() or "Unknown"

    # Processeur

    def cpu_brand(self) -> Optional[str]:
        return self._clean_string(platform.processor()) or None

    def socket_count(self) -> Optional[int]:
        return None

    def load_averages(self, mode: CollectMode, usage_percent: float, logical_cores: int) -> Optional[LoadAverages]:
        """
        Charge moyenne 1/5/15 minutes en pourcentage des cœurs logiques

        Lue depuis le noyau (rapide), donc collectée dans les deux modes.

        Args:
            mode: Mode de collecte
            usage_percent: Utilisation CPU mesurée (non utilisée sur POSIX)
            logical_cores: Nombre de cœurs logiques

        Returns:
            tuple: (1m, 5m, 15m) plafonnés à 100, ou None
        """
        raw = self._first_success(self._read_proc_loadavg, self._getloadavg)
        if raw is None:
            return None
        cores = max(logical_cores, 1)
        return tuple(min(value / cores * 100.0, 100.0) for value in raw)

    def _read_proc_loadavg(self) -> Optional[LoadAverages]:
        content = self._read_file('/proc/loadavg')
        if not content:
            return None
        parts = content.split()
        return float(parts[0]), float(parts[1]), float(parts[2])

    def _getloadavg(self) -> Optional[LoadAverages]:
        return tuple(os.getloadavg())

    # Réseau et session

    def machine_ip(self) -> Optional[str]:
        return None

    def dns_servers(self) -> List[str]:
        return []

    def last_login(self, username: str) -> Optional[Tuple[str, Optional[str]]]:
        """
        Dernière connexion de l'utilisateur

        Returns:
            tuple: (date, adresse d'origine ou None), ou None
        """
        return None

    # Disques

    def is_removable(self, partition) -> bool:
        """
        Args:
            partition: Entrée de psutil.disk_partitions()
        """
        return 'removable' in (partition.opts or '').split(',')

    def zfs_health(self) -> Optional[str]:
        """
        Santé agrégée des pools ZFS

        Returns:
            str: 'ONLINE' si tous les pools sont sains, sinon l'état du
            premier pool dégradé; None si ZFS est absent
        """
        if not shutil.which('zpool'):
            return None
        output = self._run('zpool', 'list', '-H', '-o', 'name,health')
        if not output:
            return None
        for line in output.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[1].upper() != 'ONLINE':
                return f"{parts[1].upper()} ({parts[0]})"
        return 'ONLINE'

    # Faits étendus

    def collect(self, mode: CollectMode) -> PlatformInfo:
        return PlatformInfo(architecture=platform.machine() or None)

    @staticmethod
    def _env(*names: str) -> Optional[str]:
        """Première variable d'environnement définie et non vide"""
        for name in names:
            value = os.environ.get(name)
            if value:
                return value
        return None

    @staticmethod
    def _env_locale() -> Optional[str]:
        value = PlatformProbe._env('LC_ALL', 'LC_MESSAGES', 'LANG')
        if not value or value in ('C', 'POSIX'):
            return None
        return value.split('.')[0]


class GenericProbe(PlatformProbe):
    """Sonde des systèmes sans implémentation dédiée: champs étendus absents"""

    def collect(self, mode: CollectMode) -> PlatformInfo:
        self.logger.info(str(PlatformUnsupportedError(sys.platform, "les informations étendues")))
        return PlatformInfo()


def select_probe_class(platform_name: Optional[str] = None):
    """
    Choisit l'implémentation de sonde pour la plateforme

    Args:
        platform_name: Valeur de sys.platform (courante par défaut)

    Returns:
        type: Sous-classe de PlatformProbe
    """
    platform_name = platform_name or sys.platform

    if platform_name == "win32":
        from .windows import WindowsProbe
        return WindowsProbe
    elif platform_name == "darwin":
        from .macos import MacOSProbe
        return MacOSProbe
    elif platform_name.startswith("linux"):
        from .linux import LinuxProbe
        return LinuxProbe
    return GenericProbe
