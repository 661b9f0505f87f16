"""
Module de logging du rapport machine

Ce module fournit un système de logging centralisé avec :
- Rotation automatique du fichier de log
- Sortie console sur stderr (stdout est réservé au rapport)
- Formatage cohérent
"""

import os
import sys
import logging
import logging.handlers


LOGGER_NAME = 'MachineReport'

# Handlers du projet, reconnus par leur nom parmi ceux attachés au logger
FILE_HANDLER = 'machine-report-file'
CONSOLE_HANDLER = 'machine-report-console'


def own_handlers(logger: logging.Logger) -> list:
    """Handlers installés par ReportLogger sur `logger`"""
    return [handler for handler in logger.handlers if handler.get_name() in (FILE_HANDLER, CONSOLE_HANDLER)]


class ReportLogger:
    """
    Gestionnaire de logging du rapport machine

    Configure le logger nommé du projet avec un handler fichier rotatif
    et un handler console, selon la section [logging] de la configuration.
    """

    def __init__(self, config=None, stream=None):
        """
        Initialise le système de logging

        Args:
            config: Instance de ReportConfig pour récupérer les paramètres de log
            stream: Flux de la console (stderr par défaut)
        """
        self.config = config
        self.stream = stream if stream is not None else sys.stderr
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.propagate = False

        # Éviter la duplication si déjà configuré
        if not own_handlers(self.logger):
            self._setup_logging()

    def _setup_logging(self):
        """
        Configure le niveau, le formatage et les handlers
        """
        if self.config:
            settings = self.config.get_logging_config()
            log_level_str = settings['log_level']
            log_file = settings['log_file']
            max_size = settings['max_log_size']
            backup_count = settings['backup_count']
        else:
            log_level_str = 'WARNING'
            log_file = self._get_default_log_file()
            max_size = 1048576
            backup_count = 3

        log_level = getattr(logging, str(log_level_str).upper(), logging.WARNING)
        self.logger.setLevel(log_level)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] [%(filename)s:%(lineno)d] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Fichier vide = pas de log fichier
        if log_file:
            try:
                log_dir = os.path.dirname(log_file)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir, exist_ok=True)

                file_handler = logging.handlers.RotatingFileHandler(
                    filename=log_file,
                    maxBytes=max_size,
                    backupCount=backup_count,
                    encoding='utf-8'
                )
                file_handler.setLevel(log_level)
                file_handler.setFormatter(formatter)
                file_handler.set_name(FILE_HANDLER)
                self.logger.addHandler(file_handler)

            except OSError as e:
                self.stream.write(f"Erreur lors de la configuration du logging fichier: {e}\n")

        console_handler = logging.StreamHandler(self.stream)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(fmt='%(levelname)s - %(message)s'))
        console_handler.set_name(CONSOLE_HANDLER)
        self.logger.addHandler(console_handler)

        self.logger.debug("Système de logging initialisé")
        self.logger.debug(f"Niveau de log: {log_level_str}, fichier: {log_file or 'aucun'}")

    def _get_default_log_file(self) -> str:
        """
        Détermine le fichier de log par défaut selon la plateforme

        Returns:
            str: Chemin vers le fichier de log par défaut
        """
        if sys.platform == "win32":
            return os.path.join(os.environ.get("TEMP", "C:\\temp"), "machine-report.log")
        return "/tmp/machine-report.log"

    def close(self):
        """Détache et ferme les handlers (utile entre deux exécutions dans un même processus)"""
        for handler in own_handlers(self.logger):
            self.logger.removeHandler(handler)
            handler.close()

    def get_logger(self) -> logging.Logger:
        """
        Retourne l'instance du logger

        Returns:
            logging.Logger: Instance du logger configuré
        """
        return self.logger

    def debug(self, message: str):
        """Log un message de niveau DEBUG"""
        self.logger.debug(message)

    def info(self, message: str):
        """Log un message de niveau INFO"""
        self.logger.info(message)

    def warning(self, message: str):
        """Log un message de niveau WARNING"""
        self.logger.warning(message)

    def error(self, message: str):
        """Log un message de niveau ERROR"""
        self.logger.error(message)
