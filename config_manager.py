"""
Configuration management module for the expense tracker.

This module handles loading and saving configuration values, including
storage location, analysis thresholds, budget defaults and logging setup.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union
import yaml

from exceptions import ConfigError

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    'storage': {
        'data_dir': 'data',
        'path': 'expenses.db',
        'connection_string': None,
        'encrypt': False,
    },
    'budget': {
        'monthly_default': 20000.0,
    },
    'analysis': {
        'anomaly_multiplier': 3.0,
        'anomaly_min_records': 5,
        'forecast_buffer': 1.05,
    },
    'currency': {
        'base': 'USD',
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'file': None,
    },
}

CONFIG_FILE = 'config.yaml'
CONFIG_ENV_VAR = 'EXPENSE_TRACKER_CONFIG'


def get_config_path(config_path: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve the configuration file path.

    Order of precedence: explicit argument, EXPENSE_TRACKER_CONFIG, config.yaml.

    Args:
        config_path: Optional explicit path

    Returns:
        Path to the configuration file (may not exist)
    """
    if config_path:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path(CONFIG_FILE)


def _merge_defaults(config: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Fill missing keys of config from defaults, one level of nesting deep."""
    merged = dict(config)
    for key, value in defaults.items():
        if key not in merged or merged[key] is None:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            section = dict(merged[key])
            for sub_key, sub_value in value.items():
                section.setdefault(sub_key, copy.deepcopy(sub_value))
            merged[key] = section
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from the YAML config file.

    Args:
        config_path: Optional explicit path to the config file

    Returns:
        Configuration dictionary with defaults for missing values
    """
    path = get_config_path(config_path)
    try:
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
            if not isinstance(config, dict):
                raise ConfigError(
                    "Configuration root must be a mapping",
                    details={"config_path": str(path)}
                )
        else:
            config = {}

        config = _merge_defaults(config, DEFAULT_CONFIG)
        logger.info("Configuration loaded successfully")
        return config

    except Exception as e:
        logger.error(f"Error loading configuration: {e}", exc_info=True)
        return copy.deepcopy(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any], config_path: Optional[Union[str, Path]] = None) -> bool:
    """
    Save configuration to the YAML config file.

    Args:
        config: Configuration dictionary to save
        config_path: Optional explicit path to the config file

    Returns:
        True if successful, False otherwise
    """
    path = get_config_path(config_path)
    try:
        # Read existing config to preserve other settings
        existing_config = {}
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                existing_config = yaml.safe_load(f) or {}

        existing_config.update(config)

        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(existing_config, f, default_flow_style=False)

        logger.info("Configuration saved successfully")
        return True

    except Exception as e:
        logger.error(f"Error saving configuration: {e}", exc_info=True)
        return False


def get_setting(config: Dict[str, Any], section: str, key: str, default: Any = None) -> Any:
    """
    Read a nested setting, falling back to DEFAULT_CONFIG and then to default.

    Args:
        config: Loaded configuration dictionary
        section: Top-level section name (e.g. 'analysis')
        key: Key inside the section
        default: Value returned when neither config nor defaults define it

    Returns:
        Setting value
    """
    section_values = config.get(section) or {}
    if key in section_values and section_values[key] is not None:
        return section_values[key]
    return DEFAULT_CONFIG.get(section, {}).get(key, default)
