"""Unified logging configuration for blueprint build and replica synthesis."""
from __future__ import annotations

import logging
from pathlib import Path

from .config import LOG_DIR as _LOG_DIR_SETTING
from .config import LOG_LEVEL

# Log directory, configurable via REPLICA_LOG_DIR
LOG_DIR = Path(_LOG_DIR_SETTING) if _LOG_DIR_SETTING else Path(__file__).parent.parent / "logs"

# Prevent duplicate handlers
_configured_loggers: set[str] = set()


def setup_logger(name: str, filename: str) -> logging.Logger:
    """Setup a logger with file and console handlers.

    Args:
        name: Logger name (e.g., 'blueprint', 'synth')
        filename: Log file name (e.g., 'blueprint.log')

    Returns:
        Configured logger instance
    """
    if name in _configured_loggers:
        return logging.getLogger(name)

    level = getattr(logging, LOG_LEVEL, logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False  # Prevent duplicate logs

    # File handler
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(LOG_DIR / filename, encoding='utf-8')
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
    ))

    # Console handler
    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] %(message)s"
    ))

    logger.addHandler(fh)
    logger.addHandler(sh)

    _configured_loggers.add(name)
    return logger


# Pre-configured loggers
def get_blueprint_logger() -> logging.Logger:
    """Logger for blueprint build summaries."""
    return setup_logger("blueprint", "blueprint.log")


def get_synth_logger() -> logging.Logger:
    """Logger for replica synthesis."""
    return setup_logger("synth", "synth.log")
