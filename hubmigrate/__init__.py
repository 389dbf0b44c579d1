"""
Versioned migration runner.

Applies an ordered catalog of schema and data migrations to a database
exactly once each, in order, recording progress in a single version record
that commits together with every migration.

Key components:
- ConnectionManager: SQLAlchemy-backed connections and transactions
- VersionStore: the persisted {"version": N} record
- Catalog / Migration: the ordered migrations to apply
- MigrationRunner: applies pending migrations and reports status
"""

from .core import (
    HubMigrateError, ConfigurationError, PersistenceError,
    CatalogError, MigrationFailed, ConnectionManager, DatabaseConfig
)
from .config import load_config, setup_migration_logging
from .models import VersionRecord, MigrationState, MigrationStatus, RunResult
from .migrations import (
    Migration, SQLMigration, FunctionMigration, Catalog,
    load_sql_migrations, VersionStore, MigrationRunner
)

__version__ = "1.0.0"
__all__ = [
    # Core components
    "ConnectionManager",
    "DatabaseConfig",

    # Errors
    "HubMigrateError",
    "ConfigurationError",
    "PersistenceError",
    "CatalogError",
    "MigrationFailed",

    # Configuration
    "load_config",
    "setup_migration_logging",

    # Models
    "VersionRecord",
    "MigrationState",
    "MigrationStatus",
    "RunResult",

    # Migration system
    "Migration",
    "SQLMigration",
    "FunctionMigration",
    "Catalog",
    "load_sql_migrations",
    "VersionStore",
    "MigrationRunner",
]
