"""
Logging configuration for the service.
"""

import logging
import sys

LOGGER_NAME = "lenddesk"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Setup logging with proper format and handlers."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level.upper())

    formatter = logging.Formatter(
        '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger under the service logger, e.g. get_logger("chat")."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
