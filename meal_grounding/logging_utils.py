"""
Logging setup for the meal grounding service.

Usage:
    from meal_grounding.logging_utils import get_logger

    logger = get_logger(__name__)
    logger.info("Prefetched %d candidates", n)
"""

import logging
import logging.config
import os

_configured = False

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "meal_grounding": {
            "handlers": ["console"],
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}


def setup_logging(level: str = None) -> None:
    """Apply LOGGING_CONFIG once. Safe to call repeatedly."""
    global _configured
    if _configured:
        if level:
            logging.getLogger("meal_grounding").setLevel(level.upper())
        return
    logging.config.dictConfig(LOGGING_CONFIG)
    if level:
        logging.getLogger("meal_grounding").setLevel(level.upper())
    _configured = True


def get_logger(name: str) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
