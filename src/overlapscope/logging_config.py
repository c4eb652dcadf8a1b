"""Centralized logging configuration for overlapscope."""

import logging
import logging.config
import os
import sys

from pathlib import Path
from typing import Any

from overlapscope.constants import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_MAX_BYTES,
)

_logging_configured = False

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that are chatty at DEBUG and drown out sweep progress
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def get_log_path() -> Path:
    """
    Get path to the active log file, creating the log directory if needed.

    Returns:
        Path to overlapscope.log
    """
    os.makedirs(DEFAULT_LOG_DIR, mode=0o700, exist_ok=True)
    return DEFAULT_LOG_DIR / DEFAULT_LOG_FILE


def _get_user_logging_config() -> dict[str, Any]:
    """Load the [logging] section of the config file, or {} if unusable."""
    try:
        from overlapscope.config import load_config

        logging_config = load_config().get("logging", {})
        return logging_config if isinstance(logging_config, dict) else {}
    except Exception:
        return {}


def _build_logging_config(
    verbose: bool = False,
    console_format: str | None = None,
    log_to_file: bool | None = None,
) -> dict[str, Any]:
    """
    Build the dictConfig configuration dictionary.

    Args:
        verbose: If True, set console to DEBUG level
        console_format: Override console format string
        log_to_file: Force the rotating file handler on or off. None defers
            to the [logging] enabled setting.

    Returns:
        Dictionary suitable for logging.config.dictConfig()
    """
    user_config = _get_user_logging_config()
    file_enabled = user_config.get("enabled", True) if log_to_file is None else log_to_file

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": console_format or LOG_FORMAT},
            "file": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG" if verbose else "INFO",
                "formatter": "console",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            name: {"level": "WARNING", "propagate": True} for name in NOISY_LOGGERS
        },
        "root": {
            "level": "DEBUG",
            "handlers": ["console"],
        },
    }

    if file_enabled:
        max_size_mb = user_config.get("max_size_mb")
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": str(user_config.get("level", "DEBUG")).upper(),
            "formatter": "file",
            "filename": str(get_log_path()),
            "maxBytes": (
                int(max_size_mb * 1024 * 1024) if max_size_mb else DEFAULT_LOG_MAX_BYTES
            ),
            "backupCount": user_config.get("backup_count", DEFAULT_LOG_BACKUP_COUNT),
            "encoding": "utf-8",
        }
        config["root"]["handlers"].append("file")

    return config


def setup_logging(
    *,
    verbose: bool = False,
    console_format: str | None = None,
    log_to_file: bool | None = None,
) -> None:
    """
    Configure logging for the overlapscope command line tool.

    Safe to call repeatedly; only the first call takes effect.

    Args:
        verbose: If True, set console to DEBUG level
        console_format: Override console format string. If None, uses full format.
        log_to_file: Force the rotating log file on or off (None = config file)
    """
    global _logging_configured

    if _logging_configured:
        return

    try:
        config = _build_logging_config(
            verbose=verbose, console_format=console_format, log_to_file=log_to_file
        )
        logging.config.dictConfig(config)
    except Exception as e:
        sys.stderr.write(f"WARNING: Failed to configure logging: {e}\n")
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format=console_format or "%(levelname)s: %(message)s",
        )

    _logging_configured = True
