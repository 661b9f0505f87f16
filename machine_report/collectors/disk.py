"""
Collecteur disques

Liste les volumes montés avec leur capacité, et la santé des pools ZFS
lorsque zpool est présent (mode complet uniquement).
"""

from typing import List

import psutil

from .base import BaseCollector
from ..core.models import CollectMode, DiskInfo, DiskReport


class DiskCollector(BaseCollector):
    """
    Collecteur des volumes montés

    Les volumes de taille nulle (pseudo-systèmes de fichiers) et les
    lecteurs inaccessibles sont ignorés.
    """

    def __init__(self, config, logger, probe):
        super().__init__(config, logger, probe.runner)
        self.probe = probe

    def collect(self, mode: CollectMode) -> DiskReport:
        """
        Collecte les volumes et la santé ZFS

        Args:
            mode: Mode de collecte

        Returns:
            DiskReport: Volumes dans l'ordre de psutil et santé ZFS éventuelle
        """
        self._start_collection()

        zfs_health = None
        if not self.probe.skips('zfs_health', mode):
            zfs_health = self._safe_execute(self.probe.zfs_health, "Santé ZFS")

        report = DiskReport(disks=tuple(self._collect_disks()), zfs_health=zfs_health)

        self._end_collection()
        self.logger.debug(f"{len(report.disks)} volume(s) trouvé(s)")
        return report

    def _collect_disks(self) -> List[DiskInfo]:
        disks = []
        seen = set()

        for partition in psutil.disk_partitions(all=False):
            if partition.mountpoint in seen:
                continue
            seen.add(partition.mountpoint)

            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except (PermissionError, OSError) as e:
                # Lecteur vide (CD, carte) ou point de montage inaccessible
                self.logger.debug(f"Volume ignoré {partition.mountpoint}: {e}")
                continue

            if usage.total == 0:
                continue

            total = int(usage.total)
            available = min(int(usage.free), total)
            disks.append(DiskInfo(
                mount_point=partition.mountpoint,
                filesystem=partition.fstype,
                total_bytes=total,
                available_bytes=available,
                used_bytes=total - available,
                is_removable=bool(self._safe_execute(lambda: self.probe.is_removable(partition),
                                                     "Détection amovible", False)),
                name=partition.device,
            ))

        return disks
