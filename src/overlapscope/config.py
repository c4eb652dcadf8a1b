"""Configuration management for overlapscope."""

import logging
import os
import tomllib

from pathlib import Path
from typing import Any

import tomli_w

from overlapscope.constants import DEFAULT_APP_DIR, DEFAULT_DATABASE_PATH

logger = logging.getLogger(__name__)


def get_config_path() -> Path:
    """
    Get the path to the configuration file.

    Returns:
        Path to ~/.overlapscope/config.toml
    """
    return DEFAULT_APP_DIR / "config.toml"


def load_config() -> dict[str, Any]:
    """
    Load configuration from TOML file.

    Returns:
        Configuration dictionary. Returns empty dict if file doesn't exist
        or is corrupted.
    """
    config_path = get_config_path()

    if not config_path.exists():
        return {}

    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Treating config as empty. Fix or delete the file to resolve.")
        return {}


def save_config(config: dict[str, Any]) -> None:
    """
    Save configuration to TOML file using atomic write.

    Creates the parent directory if it doesn't exist.
    Uses temp file + rename for atomic operation.

    Args:
        config: Configuration dictionary to save

    Raises:
        PermissionError: If directory cannot be created or file cannot be written
    """
    config_path = get_config_path()

    config_dir = config_path.parent
    try:
        os.makedirs(config_dir, exist_ok=True)
    except PermissionError as e:
        raise PermissionError(
            f"Cannot create config directory {config_dir}: {e}"
        ) from e

    temp_path = config_path.with_suffix(".toml.tmp")

    try:
        with open(temp_path, "wb") as f:
            tomli_w.dump(config, f)

        os.replace(temp_path, config_path)

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def get_setting(section: str, key: str, default: Any = None) -> Any:
    """
    Read a single setting from the config file.

    Args:
        section: Table name, e.g. "analysis"
        key: Key within the table
        default: Value returned when the setting is absent

    Returns:
        The configured value, or default
    """
    section_values = load_config().get(section, {})
    if not isinstance(section_values, dict):
        return default
    return section_values.get(key, default)


def set_setting(section: str, key: str, value: Any) -> None:
    """
    Set a single setting in the config file.

    Args:
        section: Table name, e.g. "analysis"
        key: Key within the table
        value: TOML-serializable value
    """
    config = load_config()

    if section not in config:
        config[section] = {}

    config[section][key] = value
    save_config(config)


def unset_setting(section: str, key: str) -> bool:
    """
    Remove a single setting from the config file.

    If this was the only setting in the section, removes the section.
    If config becomes empty, deletes the config file.

    Returns:
        True if the setting existed
    """
    config = load_config()

    if section not in config or key not in config[section]:
        return False

    del config[section][key]

    if not config[section]:
        del config[section]

    if not config:
        config_path = get_config_path()
        if config_path.exists():
            config_path.unlink()
    else:
        save_config(config)
    return True


def get_database_path(explicit_path: str | None = None) -> str:
    """
    Resolve the database path using precedence: CLI > config > default.

    Args:
        explicit_path: Value from --db flag (None if not provided)

    Returns:
        Path to the SQLite database
    """
    if explicit_path:
        return explicit_path

    configured: str | None = get_setting("database", "path")
    if configured:
        return str(Path(configured).expanduser())

    return DEFAULT_DATABASE_PATH
