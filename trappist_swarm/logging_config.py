"""Centralized logging configuration for the swarm service."""

import logging
import os

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level=None, format=DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT, extra_loggers=None):
    """Configure application logging.

    Args:
        level: Optional explicit log level. Falls back to ``SWARM_LOG_LEVEL``
            env var or INFO when not provided.
        format: Log format string.
        datefmt: Date format string.
        extra_loggers: Additional logger names to align with the configured level.

    Returns:
        The package logger (``trappist_swarm``).
    """
    raw_level = level if level is not None else os.getenv('SWARM_LOG_LEVEL')
    resolved_level = (raw_level or 'INFO').upper()
    logging.basicConfig(level=resolved_level, format=format, datefmt=datefmt)

    app_logger = logging.getLogger('trappist_swarm')
    app_logger.setLevel(resolved_level)

    for logger_name in extra_loggers or ():
        logging.getLogger(logger_name).setLevel(resolved_level)

    app_logger.debug("Logging configured at %s", resolved_level)
    return app_logger
