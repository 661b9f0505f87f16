"""
Agrégation du snapshot

Fonctions pures, sans E/S : agrégation des disques, pourcentages,
libellé d'hyperviseur et formatage des valeurs dérivées. Appliquées deux
fois aux mêmes entrées, elles produisent exactement le même résultat.
"""

from typing import Optional, Sequence, Tuple

from .models import (CollectMode, CpuInfo, DiskInfo, DiskReport, MemoryInfo, NetworkInfo,
                     OsInfo, PlatformInfo, SessionInfo, Snapshot)


GIB = 1024 ** 3


def aggregate_disk_usage(disks: Sequence[DiskInfo]) -> Tuple[int, int]:
    """
    Octets utilisés / totaux du volume principal

    Ordre de départage :
    1. le volume monté sur / (ou un volume C: sous Windows)
    2. sinon la somme des volumes non amovibles
    3. sinon, si cette somme est nulle, le premier volume de la liste

    Args:
        disks: Volumes dans l'ordre de collecte

    Returns:
        tuple: (utilisés, total)
    """
    for disk in disks:
        if disk.mount_point == "/" or disk.mount_point.upper().startswith("C:"):
            return disk.used_bytes, disk.total_bytes

    used = sum(disk.used_bytes for disk in disks if not disk.is_removable)
    total = sum(disk.total_bytes for disk in disks if not disk.is_removable)

    if total == 0 and disks:
        return disks[0].used_bytes, disks[0].total_bytes
    return used, total


def percent(used: int, total: int) -> float:
    """Pourcentage borné à [0, 100]; 0.0 si le total est nul"""
    if total <= 0:
        return 0.0
    return min(max(used / total * 100.0, 0.0), 100.0)


def hypervisor_label(platform_info: PlatformInfo) -> Optional[str]:
    """
    Libellé d'hyperviseur

    Returns:
        str: Technologie détectée, 'Bare Metal' si la sonde n'a rien trouvé,
        None si la sonde a été ignorée en mode rapide
    """
    if platform_info.virtualization:
        return platform_info.virtualization
    if 'virtualization' in platform_info.skipped:
        return None
    return "Bare Metal"


def format_uptime(seconds: int) -> str:
    """Ex: '3d 4h 12m', '4h 12m', '12m'"""
    seconds = max(int(seconds), 0)
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60

    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_gb(value: int) -> str:
    """Octets en Gio, deux décimales"""
    return f"{value / GIB:.2f}"


def build_snapshot(mode: CollectMode, os_info: OsInfo, cpu: CpuInfo, memory: MemoryInfo,
                   disk: DiskReport, network: NetworkInfo, session: SessionInfo,
                   platform_info: PlatformInfo) -> Snapshot:
    """
    Construit le snapshot immuable à partir des sorties des collecteurs

    Returns:
        Snapshot: Agrégat complet avec champs dérivés
    """
    disk_used, disk_total = aggregate_disk_usage(disk.disks)
    disk_used = min(disk_used, disk_total)
    mem_total = memory.total_bytes
    mem_used = min(memory.used_bytes, mem_total)

    return Snapshot(
        mode=mode,
        os=os_info,
        cpu=cpu,
        memory=memory,
        disk=disk,
        network=network,
        session=session,
        platform=platform_info,
        disk_used_bytes=disk_used,
        disk_total_bytes=disk_total,
        disk_percent=percent(disk_used, disk_total),
        mem_used_bytes=mem_used,
        mem_total_bytes=mem_total,
        mem_percent=percent(mem_used, mem_total),
        hypervisor=hypervisor_label(platform_info),
        uptime=format_uptime(os_info.uptime_seconds),
    )
