"""
StoryTime Magic - Logging System
Console logging plus optional rotating log files.
"""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

# Log format
DETAILED_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s'
SIMPLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

ROOT_LOGGER_NAME = "storytime"


def setup_logger(level: str = "INFO", logs_dir: str | None = None) -> logging.Logger:
    """Setup the main application logger with console and (optionally) file handlers."""

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Prevent duplicate handlers when the app is created more than once
    if logger.hasHandlers():
        logger.handlers.clear()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt='%H:%M:%S'))
    logger.addHandler(console_handler)

    if logs_dir:
        log_path = Path(logs_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        # --- Main App Log File (rotating, max 5MB, keep 5 backups) ---
        app_handler = RotatingFileHandler(
            log_path / "app.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        app_handler.setLevel(logging.DEBUG)
        app_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(app_handler)

        # --- Error Log File (errors only) ---
        error_handler = RotatingFileHandler(
            log_path / "error.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(error_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Returns a child logger (e.g. storytime.story).
    Inherits handlers from the parent logger.
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_generation_event(kind: str, event: str, details: str = "", success: bool = True):
    """Log a call to the generation backend."""
    status = "OK" if success else "FAILED"
    get_logger(f"generation.{kind}").info(f"[{status}] {event} | {details}")
