"""
Migration system configuration settings.

This module defines the default configuration and loads overrides from a
YAML file and from HUBMIGRATE_* environment variables.
"""

import os
import logging
from copy import deepcopy
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml

from ..core.engine import SUPPORTED_DATABASES
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MIGRATION_CONFIG = {
    'database': {
        'type': 'sqlite',                  # sqlite, duckdb or postgresql
        'path': 'data/hub.db',             # Database file (or name for postgresql)
        'url': None,                       # Full SQLAlchemy URL, overrides type/path
        'engine_args': {},                 # Extra create_engine() arguments
    },
    'versioning': {
        'settings_table': 'setting',       # Key/value table holding the version record
        'version_key': 'migration_version',
    },
    'logging': {
        'level': 'INFO',
        'log_file': None,                  # Optional log file in addition to the console
    },
}

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    'HUBMIGRATE_DB_TYPE': ('database', 'type'),
    'HUBMIGRATE_DB_PATH': ('database', 'path'),
    'HUBMIGRATE_DB_URL': ('database', 'url'),
    'HUBMIGRATE_LOG_LEVEL': ('logging', 'level'),
}

VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def get_default_config() -> Dict[str, Any]:
    """Get a copy of the default configuration dictionary."""
    return deepcopy(MIGRATION_CONFIG)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base, returning base."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML and environment.

    Args:
        config_path: Optional YAML file. Its values are merged over the defaults.

    Returns:
        Validated configuration dictionary

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    config = get_default_config()

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        _deep_merge(config, file_config)
        logger.debug(f"Loaded configuration from {path}")

    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config.setdefault(section, {})[key] = value
            logger.debug(f"Applied environment override {env_var}")

    if not validate_config(config):
        raise ConfigurationError("Invalid migration configuration")

    return config


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate migration configuration parameters."""
    try:
        db_config = config.get('database', {})
        if db_config.get('type') not in SUPPORTED_DATABASES:
            raise ValueError(f"database.type must be one of {SUPPORTED_DATABASES}")

        if not db_config.get('url') and not db_config.get('path'):
            raise ValueError("database.path or database.url is required")

        if not isinstance(db_config.get('engine_args', {}), dict):
            raise ValueError("database.engine_args must be a mapping")

        versioning = config.get('versioning', {})
        for key in ('settings_table', 'version_key'):
            value = versioning.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"versioning.{key} must be a non-empty string")

        level = str(config.get('logging', {}).get('level', 'INFO')).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {VALID_LOG_LEVELS}")

        return True

    except ValueError as e:
        logger.error(f"Migration configuration validation failed: {e}")
        return False
