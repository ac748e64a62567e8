"""Logging configuration for RentalEngine."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rental_engine.config import LOG_BACKUP_COUNT, LOG_FILENAME, LOG_MAX_BYTES
from rental_engine.paths import get_logs_dir


def configure_logging(
    log_dir: Optional[Path] = None, level: int = logging.INFO
) -> None:
    """Configure file and console logging for the engine."""
    log_dir = log_dir or get_logs_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILENAME

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    def handle_exception(
        exc_type: type[BaseException],
        exc: BaseException,
        traceback: object,
    ) -> None:
        root_logger.error("Unhandled exception", exc_info=(exc_type, exc, traceback))

    sys.excepthook = handle_exception


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger."""
    return logging.getLogger(name)
