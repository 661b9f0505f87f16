"""
Modèles de données du rapport machine

Ce module définit les structures immuables échangées entre les
collecteurs, l'orchestrateur, l'agrégateur et le rendu :
- Mode de collecte (complet / rapide)
- Enregistrements typés produits par chaque collecteur
- Snapshot final agrégé
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple, FrozenSet


class CollectMode(Enum):
    """Budget de temps d'une collecte"""
    FULL = "full"
    FAST = "fast"

    @classmethod
    def from_string(cls, value: str) -> "CollectMode":
        """
        Convertit une chaîne de configuration en mode

        Args:
            value: 'full' ou 'fast' (insensible à la casse)

        Returns:
            CollectMode: Mode correspondant
        """
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Mode de collecte invalide: {value} (doit être: full, fast)")


@dataclass(frozen=True)
class OsInfo:
    name: str = "Unknown"
    version: str = "Unknown"
    kernel: str = "Unknown"
    hostname: str = "Unknown"
    architecture: str = "Unknown"
    uptime_seconds: int = 0


@dataclass(frozen=True)
class CpuInfo:
    brand: str = "Unknown"
    physical_cores: int = 0
    logical_cores: int = 0
    sockets: Optional[int] = None
    frequency_mhz: float = 0.0
    usage_percent: float = 0.0
    load_1m: Optional[float] = None
    load_5m: Optional[float] = None
    load_15m: Optional[float] = None

    @property
    def frequency_ghz(self) -> float:
        return self.frequency_mhz / 1000.0


@dataclass(frozen=True)
class MemoryInfo:
    total_bytes: int = 0
    used_bytes: int = 0
    available_bytes: int = 0
    swap_total_bytes: int = 0
    swap_used_bytes: int = 0


@dataclass(frozen=True)
class DiskInfo:
    mount_point: str
    filesystem: str = ""
    total_bytes: int = 0
    available_bytes: int = 0
    used_bytes: int = 0
    is_removable: bool = False
    name: str = ""


@dataclass(frozen=True)
class DiskReport:
    """Résultat du collecteur disque: volumes montés et santé ZFS éventuelle"""
    disks: Tuple[DiskInfo, ...] = ()
    zfs_health: Optional[str] = None


@dataclass(frozen=True)
class NetworkInfo:
    machine_ip: Optional[str] = None
    client_ip: Optional[str] = None
    dns_servers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SessionInfo:
    username: str = "Unknown"
    home_dir: str = ""
    shell: str = "Unknown"
    current_dir: str = ""
    terminal: str = "Unknown"
    last_login: Optional[str] = None
    last_login_ip: Optional[str] = None


@dataclass(frozen=True)
class PlatformInfo:
    """
    Faits optionnels spécifiques à chaque système

    Chaque champ est indépendamment optionnel: None signifie que la sonde
    a été ignorée (mode rapide) ou qu'elle a échoué. Les noms des sondes
    ignorées sont conservés dans `skipped`.
    """
    desktop_environment: Optional[str] = None
    display_server: Optional[str] = None
    windows_edition: Optional[str] = None
    macos_codename: Optional[str] = None
    boot_mode: Optional[str] = None
    virtualization: Optional[str] = None
    gpus: Tuple[str, ...] = ()
    architecture: Optional[str] = None
    terminal: Optional[str] = None
    shell: Optional[str] = None
    display_resolution: Optional[str] = None
    battery: Optional[str] = None
    locale: Optional[str] = None
    skipped: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Snapshot:
    """
    Agrégat immuable d'une génération de rapport

    Contient la sortie de chaque collecteur et les champs dérivés calculés
    par l'agrégateur. Créé une seule fois, jamais modifié ensuite.
    """
    mode: CollectMode
    os: OsInfo
    cpu: CpuInfo
    memory: MemoryInfo
    disk: DiskReport
    network: NetworkInfo
    session: SessionInfo
    platform: PlatformInfo

    # Champs dérivés
    disk_used_bytes: int = 0
    disk_total_bytes: int = 0
    disk_percent: float = 0.0
    mem_used_bytes: int = 0
    mem_total_bytes: int = 0
    mem_percent: float = 0.0
    hypervisor: Optional[str] = None
    uptime: str = "0m"

    def _platform_fact(self, name: str, session_value: Optional[str] = None):
        """Valeur de la plateforme, sinon celle de la session; None si la sonde a été ignorée"""
        if name in self.platform.skipped:
            return None
        return getattr(self.platform, name) or _known(session_value)

    @property
    def shell(self) -> Optional[str]:
        return self._platform_fact('shell', self.session.shell)

    @property
    def terminal(self) -> Optional[str]:
        return self._platform_fact('terminal', self.session.terminal)

    @property
    def locale(self) -> Optional[str]:
        return self._platform_fact('locale')

    @property
    def battery(self) -> Optional[str]:
        return self._platform_fact('battery')

    @property
    def gpus(self) -> Tuple[str, ...]:
        return self.platform.gpus


def _known(value: Optional[str]) -> Optional[str]:
    if not value or value == "Unknown":
        return None
    return value
