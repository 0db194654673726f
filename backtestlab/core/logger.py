"""Core logging setup module.

``setup_logging`` attaches handlers to the ``backtestlab`` logger tree once;
every module logs through ``logging.getLogger(__name__)`` and inherits them.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from backtestlab.core.config import SystemConfig

_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
_ROOT_LOGGER = "backtestlab"


def setup_logging(
    name: str = _ROOT_LOGGER,
    level: str = "INFO",
    log_dir: str | None = None,
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Repeated calls (app factory, CLI, tests) only adjust the level
    if logger.handlers:
        return logger

    formatter = logging.Formatter(_LOG_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=log_path / f"{name}.log",
            when="midnight",
            backupCount=30,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def configure_logging(system: SystemConfig) -> logging.Logger:
    """Configure the package logger from the ``system`` settings section."""
    return setup_logging(_ROOT_LOGGER, level=system.log_level, log_dir=system.log_dir)
