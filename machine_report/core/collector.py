"""
Module collecteur principal du rapport machine

Ce module orchestre la collecte de toutes les informations système :
- Lancement concurrent des sept collecteurs
- Attente inconditionnelle de leur terminaison
- Politique d'échec obligatoire / optionnel
- Agrégation en un snapshot immuable
"""

import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Optional

from .aggregator import build_snapshot
from .errors import MandatoryCollectorError, OptionalCollectorError
from .models import CollectMode, DiskReport, NetworkInfo, PlatformInfo, SessionInfo, Snapshot
from ..collectors.base import CommandRunner
from ..collectors.cpu import CpuCollector
from ..collectors.disk import DiskCollector
from ..collectors.network import NetworkCollector
from ..collectors.platform import select_probe_class
from ..collectors.session import SessionCollector
from ..collectors.system import MemoryCollector, OsCollector


MANDATORY_COLLECTORS = ('os', 'cpu', 'memory')

# Valeurs laissées dans le snapshot quand un collecteur optionnel échoue
OPTIONAL_DEFAULTS = {
    'disk': DiskReport(),
    'network': NetworkInfo(),
    'session': SessionInfo(),
    'platform': PlatformInfo(),
}


class SystemReportCollector:
    """
    Orchestrateur de collecte

    Chaque appel à collect() lance exactement sept tâches dans un pool
    dédié, attend la plus lente, puis agrège. Chaque tâche possède sa
    propre sonde de plateforme: aucun état mutable n'est partagé.
    """

    def __init__(self, config, logger, probe_class=None, runner: Optional[CommandRunner] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialise l'orchestrateur

        Args:
            config: Instance de ReportConfig
            logger: Instance de ReportLogger
            probe_class: Implémentation de sonde (détectée depuis sys.platform si absente)
            runner: Exécuteur de commandes partagé (sans état)
            sleep: Fonction d'attente utilisée pour l'échantillonnage CPU
        """
        self.config = config
        self.report_logger = logger
        self.logger = logger.get_logger()
        self.probe_class = probe_class or select_probe_class()
        self.runner = runner or CommandRunner(logger, timeout=config.getint('collection', 'command_timeout', 30))
        self.sleep = sleep
        self.last_durations: Dict[str, float] = {}

        self.logger.debug(f"Sonde de plateforme: {self.probe_class.__name__}")

    def _new_probe(self):
        return self.probe_class(self.config, self.report_logger, self.runner)

    def _settle(self, mode: CollectMode) -> Optional[Callable[[], None]]:
        """Délai entre les deux échantillons CPU, uniquement en mode complet"""
        if mode != CollectMode.FULL:
            return None
        interval = self.config.getint('collection', 'cpu_sample_interval_ms', 200) / 1000.0
        return lambda: self.sleep(interval)

    def _units(self, mode: CollectMode) -> Dict[str, Callable[[], Any]]:
        """Les sept unités de collecte, construites et exécutées dans leur tâche"""
        config, logger = self.config, self.report_logger
        return {
            'os': lambda: OsCollector(config, logger, self._new_probe()).collect(mode),
            'cpu': lambda: CpuCollector(config, logger, self._new_probe(), self._settle(mode)).collect(mode),
            'memory': lambda: MemoryCollector(config, logger, self.runner).collect(mode),
            'disk': lambda: DiskCollector(config, logger, self._new_probe()).collect(mode),
            'network': lambda: NetworkCollector(config, logger, self._new_probe()).collect(mode),
            'session': lambda: SessionCollector(config, logger, self._new_probe()).collect(mode),
            'platform': lambda: self._new_probe().collect(mode),
        }

    def _timed(self, name: str, unit: Callable[[], Any]) -> Any:
        start = time.monotonic()
        try:
            return unit()
        finally:
            self.last_durations[name] = time.monotonic() - start

    def collect(self, mode: CollectMode = CollectMode.FULL) -> Snapshot:
        """
        Lance la collecte complète

        Args:
            mode: Budget de temps de la collecte

        Returns:
            Snapshot: Agrégat immuable

        Raises:
            MandatoryCollectorError: Échec du collecteur OS, CPU ou mémoire
        """
        start_time = time.monotonic()
        self.logger.info(f"Début de collecte (mode {mode.value})")

        units = self._units(mode)
        with ThreadPoolExecutor(max_workers=len(units), thread_name_prefix='collector') as executor:
            futures = {name: executor.submit(self._timed, name, unit) for name, unit in units.items()}
            # Attente inconditionnelle: pas d'annulation, pas de jointure partielle
            wait(futures.values())

        results = {}
        for name, future in futures.items():
            error = future.exception()
            if error is None:
                results[name] = future.result()
            elif name in MANDATORY_COLLECTORS:
                self.logger.debug(f"Collecteur obligatoire '{name}' en échec: {error}")
                raise MandatoryCollectorError(name, error) from error
            else:
                self.logger.info(str(OptionalCollectorError(name, error)))
                results[name] = OPTIONAL_DEFAULTS[name]

        for name, duration in sorted(self.last_durations.items()):
            self.logger.debug(f"Collecteur {name}: {duration:.3f}s")

        snapshot = build_snapshot(
            mode=mode,
            os_info=results['os'],
            cpu=results['cpu'],
            memory=results['memory'],
            disk=results['disk'],
            network=results['network'],
            session=results['session'],
            platform_info=results['platform'],
        )

        self.logger.info(f"Collecte terminée en {time.monotonic() - start_time:.2f}s")
        return snapshot
