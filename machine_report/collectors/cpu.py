"""
Collecteur processeur

Ce module collecte :
- Marque et fréquence du processeur
- Nombre de cœurs physiques / logiques et de sockets
- Utilisation instantanée (double échantillonnage en mode complet)
- Charges moyennes normalisées en pourcentage
"""

from typing import Callable, Optional

import psutil

from .base import BaseCollector
from ..core.models import CollectMode, CpuInfo


class CpuCollector(BaseCollector):
    """
    Collecteur des informations processeur

    L'utilisation CPU nécessite deux échantillons séparés d'un court délai.
    Le délai est fourni par l'orchestrateur (`settle`): absent en mode
    rapide, où l'échantillon unique est utilisé tel quel.
    """

    def __init__(self, config, logger, probe, settle: Optional[Callable[[], None]] = None):
        """
        Args:
            config: Instance de ReportConfig
            logger: Instance de ReportLogger
            probe: Sonde de plateforme
            settle: Attente entre les deux échantillons (None = pas d'attente)
        """
        super().__init__(config, logger, probe.runner)
        self.probe = probe
        self.settle = settle

    def collect(self, mode: CollectMode) -> CpuInfo:
        """
        Collecte les informations processeur

        Args:
            mode: Mode de collecte

        Returns:
            CpuInfo: Informations processeur
        """
        self._start_collection()

        usage = self._sample_usage()
        logical = psutil.cpu_count(logical=True) or 0
        physical = psutil.cpu_count(logical=False) or logical

        sockets = None
        if not self.probe.skips('sockets', mode):
            sockets = self.probe.socket_count()

        loads = self.probe.load_averages(mode, usage, logical)
        load_1m, load_5m, load_15m = loads if loads else (None, None, None)

        info = CpuInfo(
            brand=self.probe.cpu_brand() or "Unknown",
            physical_cores=physical,
            logical_cores=logical,
            sockets=sockets,
            frequency_mhz=self._safe_execute(self._frequency_mhz, "Fréquence CPU", 0.0),
            usage_percent=usage,
            load_1m=load_1m,
            load_5m=load_5m,
            load_15m=load_15m,
        )

        self._end_collection()
        return info

    def _sample_usage(self) -> float:
        """
        Utilisation moyenne sur tous les cœurs

        Returns:
            float: Pourcentage entre 0 et 100
        """
        per_core = psutil.cpu_percent(interval=None, percpu=True)
        if self.settle is not None:
            self.settle()
            per_core = psutil.cpu_percent(interval=None, percpu=True)

        if not per_core:
            return 0.0
        return min(max(sum(per_core) / len(per_core), 0.0), 100.0)

    def _frequency_mhz(self) -> float:
        frequency = psutil.cpu_freq()
        if frequency is None:
            return 0.0
        return float(frequency.current or frequency.max or 0.0)
