"""Logging setup for Katagrafy: a rotating log file plus console output."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from core.constants import APP_DIR_NAME

LOG_FILE_NAME = "katagrafy.log"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
MAX_LOG_BYTES = 2 * 1024 * 1024
LOG_BACKUP_COUNT = 5

FILE_LEVEL_ENV = "KATAGRAFY_LOG_FILE_LEVEL"
CONSOLE_LEVEL_ENV = "KATAGRAFY_LOG_CONSOLE_LEVEL"

# httpx logs full request URLs at INFO, including the Gemini key query param.
QUIET_LOGGERS = ("httpx", "httpcore")

_LEVEL_NAMES = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def parse_level(value: Optional[str], default: int) -> int:
    """Map a level name such as ``"debug"`` to its ``logging`` constant."""
    name = (value or "").strip().upper()
    if name not in _LEVEL_NAMES:
        return default
    return getattr(logging, name)


def default_log_dir() -> Path:
    return Path.home() / APP_DIR_NAME / "logs"


def _open_log_file(log_file: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _log_uncaught(exc_type, exc, tb) -> None:
    if not issubclass(exc_type, KeyboardInterrupt):
        logging.getLogger("katagrafy.uncaught").critical(
            "Unhandled exception", exc_info=(exc_type, exc, tb)
        )
    sys.__excepthook__(exc_type, exc, tb)


def configure_logging(
    log_dir: Optional[Path] = None,
    file_level: Optional[str] = None,
    console_level: Optional[str] = None,
) -> Path:
    """Install the root handlers, capture warnings and log uncaught errors.

    Levels come from the arguments, then ``KATAGRAFY_LOG_FILE_LEVEL`` and
    ``KATAGRAFY_LOG_CONSOLE_LEVEL``, then INFO. When the log directory is
    not writable the console handler is the only one installed.

    Returns:
        Path of the log file.
    """
    log_file = (log_dir or default_log_dir()) / LOG_FILE_NAME
    file_level_value = parse_level(file_level or os.getenv(FILE_LEVEL_ENV), logging.INFO)
    console_level_value = parse_level(console_level or os.getenv(CONSOLE_LEVEL_ENV), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level_value)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    file_error: Optional[OSError] = None
    try:
        handlers.insert(0, _open_log_file(log_file, file_level_value, formatter))
    except OSError as exc:
        file_error = exc

    logging.basicConfig(
        level=min(file_level_value, console_level_value),
        handlers=handlers,
        force=True,
    )
    logging.captureWarnings(True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, file_level_value))
    sys.excepthook = _log_uncaught

    logger = logging.getLogger(__name__)
    if file_error is not None:
        logger.warning("File logging disabled: %s", file_error)
    else:
        logger.debug("Logging initialized at %s", log_file)
    return log_file
