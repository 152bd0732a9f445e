"""Centralized logging configuration."""

from __future__ import annotations

import logging
import sys


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger with a single stdout handler attached.

    Args:
        name: Logger name (typically ``__name__`` of the calling module)
        level: Optional log level override (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger = logging.getLogger(name)

    log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logger.setLevel(log_level)

    # Avoid duplicate handlers when modules are re-imported.
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)

    return logger
