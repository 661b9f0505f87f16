"""
Collecteur réseau

Ce module collecte :
- L'adresse IP principale de la machine
- L'adresse du client SSH éventuel
- Les serveurs DNS configurés (ordre d'apparition, sans doublon)
"""

import os
import socket
from typing import Optional

from .base import BaseCollector
from ..core.models import CollectMode, NetworkInfo


MAX_DNS_SERVERS = 5


class NetworkCollector(BaseCollector):
    """Collecteur des informations réseau"""

    def __init__(self, config, logger, probe):
        super().__init__(config, logger, probe.runner)
        self.probe = probe
        self.max_dns_servers = config.getint('collection', 'max_dns_servers', MAX_DNS_SERVERS) \
            if config else MAX_DNS_SERVERS

    def collect(self, mode: CollectMode) -> NetworkInfo:
        """
        Collecte les informations réseau

        Args:
            mode: Mode de collecte

        Returns:
            NetworkInfo: Informations réseau
        """
        self._start_collection()

        dns_servers = self.probe.dns_servers() or []
        info = NetworkInfo(
            machine_ip=self._first_success(self._primary_ip, self.probe.machine_ip),
            client_ip=self._client_ip(),
            dns_servers=tuple(self._unique(dns_servers, limit=self.max_dns_servers))
            if self.max_dns_servers > 0 else (),
        )

        self._end_collection()
        return info

    def _primary_ip(self) -> Optional[str]:
        """
        Adresse de l'interface utilisée pour la route par défaut

        Aucun paquet n'est envoyé: connect() sur un socket UDP
        sélectionne seulement l'interface de sortie.
        """
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.settimeout(1)
            sock.connect(("8.8.8.8", 80))
            address = sock.getsockname()[0]
        return address if address and not address.startswith('127.') and address != '0.0.0.0' else None

    def _client_ip(self) -> Optional[str]:
        """Adresse du client SSH (SSH_CLIENT puis SSH_CONNECTION)"""
        for variable in ('SSH_CLIENT', 'SSH_CONNECTION'):
            value = os.environ.get(variable, '').split()
            if value:
                return value[0]
        return None
