"""
Versioned migration system.

This module provides:
- Migration definitions and the ordered, append-only catalog
- The version store holding the index of the last committed migration
- The runner applying pending migrations one transaction at a time
"""

from .migration import (
    Migration, SQLMigration, FunctionMigration, Catalog,
    as_catalog, load_sql_migrations, split_statements
)
from .version_store import VersionStore
from .migration_runner import MigrationRunner

__all__ = [
    'Migration',
    'SQLMigration',
    'FunctionMigration',
    'Catalog',
    'as_catalog',
    'load_sql_migrations',
    'split_statements',
    'VersionStore',
    'MigrationRunner',
]
