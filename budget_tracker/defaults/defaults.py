"""Configuration loader for tracker defaults."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

# Configuration directory
CONFIG_DIR = Path(__file__).parent


@lru_cache(maxsize=None)
def _read_config(config_path: Path) -> Dict[str, Any]:
    with open(config_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_config(config_name: str) -> Dict[str, Any]:
    """Load a configuration file by name.

    Args:
        config_name: Name of the config file (without .json extension)

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the configuration file doesn't exist
        json.JSONDecodeError: If the configuration file is invalid JSON

    Example:
        >>> config = load_config('tracker')
        >>> config['constants']['schema_version']
        3
    """
    config_path = CONFIG_DIR / f"{config_name}.json"

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    return _read_config(config_path)


def get_tracker_config() -> Dict[str, Any]:
    """Get the tracker configuration.

    Returns:
        Configuration dictionary with constants, keyword rules, allocation
        defaults, alert texts, factory presets and sample data
    """
    return load_config('tracker')


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Get a nested configuration value by key path.

    Args:
        config_name: Name of the config file
        *keys: Path to the nested value (e.g., 'constants', 'currency_symbol')
        default: Default value if key path doesn't exist

    Returns:
        The configuration value at the specified path, or default if not found

    Example:
        >>> get_config_value('tracker', 'constants', 'default_category')
        'New Category'
    """
    try:
        config = load_config(config_name)
        value = config
        for key in keys:
            value = value[key]
        return value
    except (KeyError, FileNotFoundError):
        return default
