"""
Exceptions du rapport machine

Hiérarchie:
- ReportError: base de toutes les erreurs du projet
- MandatoryCollectorError: échec d'un collecteur obligatoire (OS, CPU, mémoire)
- OptionalCollectorError: échec d'un collecteur optionnel, journalisé puis récupéré
- PlatformUnsupportedError: aucune implémentation pour le système courant
- ConfigError: configuration invalide
"""


class ReportError(Exception):
    """Erreur de base du rapport machine"""


class CollectorError(ReportError):
    """
    Échec d'un collecteur

    Args:
        collector: Nom de la catégorie (os, cpu, disk...)
        cause: Exception d'origine
    """

    def __init__(self, collector: str, cause: Exception = None):
        self.collector = collector
        self.cause = cause
        message = f"Collecteur '{collector}' en échec"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class MandatoryCollectorError(CollectorError):
    """Un collecteur obligatoire a échoué: aucun rapport n'est produit"""


class OptionalCollectorError(CollectorError):
    """Un collecteur optionnel a échoué: le rapport est dégradé"""


class PlatformUnsupportedError(ReportError):
    """Système d'exploitation non pris en charge pour cette opération"""

    def __init__(self, platform_name: str, operation: str = "cette opération"):
        self.platform_name = platform_name
        super().__init__(f"Plateforme non supportée pour {operation}: {platform_name}")


class ConfigError(ReportError):
    """Configuration invalide"""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))
