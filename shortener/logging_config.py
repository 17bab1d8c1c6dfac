"""Logger setup for the URL shortener."""

import logging

from shortener.config import Settings

__all__ = ["LOGGER_NAME", "setup_logging"]

LOGGER_NAME = "urlshortener"


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure the service logger once and return it.

    Child loggers (``urlshortener.repository``) propagate to this handler.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(settings.LOG_LEVEL.upper())
    return logger
