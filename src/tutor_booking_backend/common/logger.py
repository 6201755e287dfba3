'''
Application logger, imported everywhere as `log`.
'''
import logging
import sys

from .config import settings

LOGGER_NAME = 'TB-backend'


def setup_logger(level: str = settings.LOG_LEVEL) -> logging.Logger:
    """
    Configures the application logger once; later calls return the same logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(module)-20s - %(levelname)s\n - %(message)s'
        ))
        logger.addHandler(handler)

    return logger

log = setup_logger()
