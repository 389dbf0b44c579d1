"""
Core components.

This module contains the building blocks the migration runner relies on:
- Engine creation for the supported databases
- Connection and transaction management
- The exception hierarchy
"""

from .exceptions import (
    HubMigrateError, ConfigurationError, PersistenceError,
    CatalogError, MigrationFailed
)
from .engine import DatabaseConfig
from .connection import ConnectionManager, Connection

__all__ = [
    "HubMigrateError",
    "ConfigurationError",
    "PersistenceError",
    "CatalogError",
    "MigrationFailed",
    "DatabaseConfig",
    "ConnectionManager",
    "Connection",
]
