"""
Collecteurs système de base

Ce module collecte les informations obligatoires du rapport :
- Système d'exploitation (nom, version, noyau, hôte, architecture, uptime)
- Mémoire physique et swap
"""

import time
import socket
import platform

import psutil

from .base import BaseCollector
from ..core.models import CollectMode, MemoryInfo, OsInfo


class OsCollector(BaseCollector):
    """Collecteur d'identité du système"""

    def __init__(self, config, logger, probe):
        super().__init__(config, logger, probe.runner)
        self.probe = probe

    def collect(self, mode: CollectMode) -> OsInfo:
        """
        Collecte l'identité du système

        Args:
            mode: Mode de collecte (sans effet, toutes les sondes sont rapides)

        Returns:
            OsInfo: Identité du système
        """
        self._start_collection()

        name, version = self.probe.os_identity()
        info = OsInfo(
            name=name,
            version=version,
            kernel=self.probe.kernel(),
            hostname=socket.gethostname() or platform.node() or "Unknown",
            architecture=platform.machine() or "Unknown",
            uptime_seconds=max(int(time.time() - psutil.boot_time()), 0),
        )

        self._end_collection()
        return info


class MemoryCollector(BaseCollector):
    """Collecteur mémoire"""

    def collect(self, mode: CollectMode) -> MemoryInfo:
        """
        Collecte l'utilisation mémoire

        La mémoire utilisée est total - disponible, bornée au total.

        Args:
            mode: Mode de collecte (sans effet)

        Returns:
            MemoryInfo: Utilisation mémoire
        """
        self._start_collection()

        memory = psutil.virtual_memory()
        swap = self._safe_execute(psutil.swap_memory, "Swap")

        total = int(memory.total)
        available = min(int(memory.available), total)

        info = MemoryInfo(
            total_bytes=total,
            used_bytes=total - available,
            available_bytes=available,
            swap_total_bytes=int(swap.total) if swap else 0,
            swap_used_bytes=int(swap.used) if swap else 0,
        )

        self._end_collection()
        return info
