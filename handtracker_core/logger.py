"""
Logging setup for handtracker_core.

Configures logging to the console and, optionally, to a rotating file in
%APPDATA%/HandtrackerCore/logs/ (or ~/.handtracker_core/logs/).
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import LOG_FILENAME, LOG_MAX_BYTES, LOG_BACKUP_COUNT

BASE_LOGGER_NAME = "HandtrackerCore"
LOG_DIR_ENV = "HANDTRACKER_LOG_DIR"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def get_log_directory() -> Path:
    """
    Get the log directory path.

    $HANDTRACKER_LOG_DIR wins over the platform default.

    Returns:
        Path to the log directory, created if it doesn't exist.
    """
    override = os.environ.get(LOG_DIR_ENV)
    if override:
        log_dir = Path(override)
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir

    appdata = os.environ.get("APPDATA")
    if appdata:
        log_dir = Path(appdata) / "HandtrackerCore" / "logs"
    else:
        # Fallback to user home directory
        log_dir = Path.home() / ".handtracker_core" / "logs"

    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def setup_logging(
    debug: bool = False,
    log_to_file: bool = True,
    log_filename: Optional[str] = None,
    log_dir: Optional[Path] = None,
    level: Optional[str] = None
) -> logging.Logger:
    """
    Configure and return the package logger.

    Args:
        debug: Enable debug-level logging if True.
        log_to_file: Write logs to file if True.
        log_filename: Override default log filename.
        log_dir: Override default log directory.
        level: Console level name from LOG_LEVELS; overrides debug.

    Returns:
        Configured logger instance.

    Raises:
        ValueError: If level is not one of LOG_LEVELS.
    """
    console_level = _resolve_level(debug, level)

    logger = logging.getLogger(BASE_LOGGER_NAME)
    logger.setLevel(console_level)

    # Clear any existing handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    detailed_format = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s.%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    simple_format = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(simple_format)
    logger.addHandler(console_handler)

    if log_to_file:
        directory = log_dir if log_dir is not None else get_log_directory()
        directory.mkdir(parents=True, exist_ok=True)
        log_path = directory / (log_filename or LOG_FILENAME)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_format)
        logger.addHandler(file_handler)

        logger.debug(f"Logging to file: {log_path}")

    return logger


def _resolve_level(debug: bool, level: Optional[str]) -> int:
    if level is None:
        return logging.DEBUG if debug else logging.INFO
    name = level.upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level '{level}', expected one of {', '.join(LOG_LEVELS)}")
    return getattr(logging, name)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a child logger with the given name.

    Args:
        name: Optional name for the child logger.

    Returns:
        Logger instance (child of main logger or main logger if no name).
    """
    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    if name:
        return base_logger.getChild(name)
    return base_logger
