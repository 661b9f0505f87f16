"""
Classe de base pour tous les collecteurs du rapport machine

Ce module définit l'interface commune que tous les collecteurs
doivent implémenter, ainsi que des utilitaires partagés :
- Exécution de commandes système (injectable pour les tests)
- Chaînes de repli (première stratégie qui réussit)
- Lecture de fichiers et nettoyage de chaînes
"""

import re
import time
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence

from ..core.models import CollectMode


class CommandRunner:
    """
    Exécute des commandes système et retourne leur sortie

    Toute erreur (commande absente, code de retour non nul, timeout,
    sortie vide) est convertie en None: une commande en échec est une
    sonde en échec, jamais une exception.
    """

    def __init__(self, logger, timeout: int = 30):
        """
        Args:
            logger: Instance de ReportLogger
            timeout: Délai maximal d'une commande, en secondes
        """
        self.logger = logger
        self.timeout = timeout

    def run(self, args: Sequence[str]) -> Optional[str]:
        """
        Exécute une commande et retourne sa sortie standard

        Args:
            args: Commande et arguments (sans shell)

        Returns:
            str: Sortie de la commande ou None en cas d'erreur
        """
        command = ' '.join(args)
        try:
            result = subprocess.run(
                list(args),
                capture_output=True,
                text=True,
                errors='replace',
                timeout=self.timeout
            )
        except FileNotFoundError:
            self.logger.debug(f"Commande introuvable: {args[0]}")
            return None
        except subprocess.TimeoutExpired:
            self.logger.info(f"Timeout pour la commande: {command}")
            return None
        except OSError as e:
            self.logger.debug(f"Erreur lors de l'exécution de '{command}': {e}")
            return None

        if result.returncode != 0:
            self.logger.debug(f"Commande échouée: {command} (code: {result.returncode})")
            return None

        output = result.stdout.strip()
        return output or None


class BaseCollector(ABC):
    """
    Classe de base abstraite pour tous les collecteurs

    Définit l'interface commune et fournit des méthodes utilitaires
    pour la collecte de données système.
    """

    def __init__(self, config, logger, runner: Optional[CommandRunner] = None):
        """
        Initialise le collecteur de base

        Args:
            config: Instance de ReportConfig
            logger: Instance de ReportLogger
            runner: Exécuteur de commandes (créé depuis la configuration si absent)
        """
        self.config = config
        self.logger = logger
        if runner is None:
            timeout = config.getint('collection', 'command_timeout', 30) if config else 30
            runner = CommandRunner(logger, timeout=timeout)
        self.runner = runner

        # Métadonnées du collecteur
        self.collector_name = self.__class__.__name__
        self.collection_start_time = None
        self.collection_errors = []
        self.last_collection_duration = 0.0

    @abstractmethod
    def collect(self, mode: CollectMode) -> Any:
        """
        Méthode principale de collecte - doit être implémentée par chaque collecteur

        Args:
            mode: Budget de temps de la collecte

        Returns:
            Enregistrement typé du collecteur
        """

    def _start_collection(self):
        """Démarre une session de collecte (mesure de durée, remise à zéro des erreurs)"""
        self.collection_start_time = time.monotonic()
        self.collection_errors = []
        self.logger.debug(f"Début collecte {self.collector_name}")

    def _end_collection(self) -> float:
        """
        Termine une session de collecte

        Returns:
            float: Durée de collecte en secondes
        """
        if self.collection_start_time is None:
            return 0.0

        duration = time.monotonic() - self.collection_start_time
        self.last_collection_duration = duration
        self.logger.debug(f"Collecte {self.collector_name} terminée en {duration:.2f}s")

        if self.collection_errors:
            self.logger.debug(f"Collecte {self.collector_name} avec {len(self.collection_errors)} sonde(s) en échec")

        return duration

    def _safe_execute(self, func: Callable[[], Any], error_message: str = "Erreur lors de l'exécution",
                      default_value=None):
        """
        Exécute une fonction de manière sécurisée avec gestion d'erreur

        Args:
            func: Fonction à exécuter
            error_message: Message d'erreur personnalisé
            default_value: Valeur par défaut en cas d'erreur

        Returns:
            Résultat de la fonction ou default_value
        """
        try:
            return func()
        except Exception as e:
            error_details = f"{error_message}: {e}"
            self.collection_errors.append(error_details)
            self.logger.debug(error_details)
            return default_value

    def _first_success(self, *strategies: Callable[[], Any]) -> Any:
        """
        Essaie chaque stratégie dans l'ordre et retourne le premier résultat utile

        Une stratégie échoue si elle lève une exception ou retourne une
        valeur vide (None, chaîne vide, liste vide).

        Args:
            strategies: Fonctions sans argument retournant une valeur ou None

        Returns:
            Premier résultat non vide, ou None si toutes échouent
        """
        for strategy in strategies:
            name = getattr(strategy, '__name__', repr(strategy))
            value = self._safe_execute(strategy, f"Sonde {name} en échec")
            if value:
                return value
        return None

    def _run(self, *args: str) -> Optional[str]:
        """Raccourci vers l'exécuteur de commandes"""
        return self.runner.run(args)

    def _clean_string(self, value: Any) -> str:
        """
        Nettoie une chaîne de caractères

        Args:
            value: Chaîne à nettoyer

        Returns:
            str: Chaîne nettoyée
        """
        if not value:
            return ""

        value = str(value).strip()

        # Supprimer les caractères de contrôle
        value = ''.join(char for char in value if char.isprintable())

        # Supprimer les espaces multiples
        return re.sub(r'\s+', ' ', value)

    def _read_file(self, file_path: str) -> Optional[str]:
        """
        Lit un fichier de manière sécurisée

        Args:
            file_path: Chemin vers le fichier

        Returns:
            str: Contenu du fichier ou None
        """
        try:
            with open(file_path, 'r', encoding='utf-8', errors='replace') as f:
                return f.read().strip()
        except FileNotFoundError:
            self.logger.debug(f"Fichier non trouvé: {file_path}")
            return None
        except OSError as e:
            self.logger.debug(f"Erreur lecture fichier {file_path}: {e}")
            return None

    @staticmethod
    def _unique(values: List[str], limit: Optional[int] = None) -> List[str]:
        """
        Dédoublonne en conservant l'ordre de première apparition

        Args:
            values: Valeurs brutes
            limit: Nombre maximal de valeurs conservées

        Returns:
            list: Valeurs uniques dans l'ordre d'origine
        """
        seen = []
        for value in values:
            if value and value not in seen:
                seen.append(value)
                if limit is not None and len(seen) >= limit:
                    break
        return seen
