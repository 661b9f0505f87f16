"""
Rapport machine - Diagnostic instantané multi-plateforme

Collecte en parallèle les informations système (OS, CPU, mémoire, disques,
réseau, session, plateforme) et les rend sous forme de tableau ou de JSON.
"""

__version__ = "1.0.0"
__author__ = "Machine Report Team"

# Imports principaux pour faciliter l'utilisation
from .core.collector import SystemReportCollector
from .core.config import ReportConfig
from .core.logger import ReportLogger

__all__ = ['SystemReportCollector', 'ReportConfig', 'ReportLogger']
