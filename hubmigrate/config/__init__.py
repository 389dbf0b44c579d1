"""
Migration system configuration.

This module handles:
- Database and versioning settings
- YAML and environment overrides
- Logging configuration
"""

from .db_config import get_default_config, load_config, validate_config, MIGRATION_CONFIG
from .logging_config import setup_migration_logging, MigrationLoggerAdapter

__all__ = [
    'get_default_config',
    'load_config',
    'validate_config',
    'MIGRATION_CONFIG',
    'setup_migration_logging',
    'MigrationLoggerAdapter'
]
