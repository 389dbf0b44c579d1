"""
Exception hierarchy for the migration system.

Every error raised by hubmigrate derives from HubMigrateError so callers
can catch the whole family in one place.
"""

from typing import Optional


class HubMigrateError(Exception):
    """Base for all migration system errors."""


class ConfigurationError(HubMigrateError):
    """Configuration file or values are invalid."""


class PersistenceError(HubMigrateError):
    """Reading or writing the version record, or managing a connection, failed."""


class CatalogError(HubMigrateError):
    """The migration catalog is malformed or does not match the stored version."""


class MigrationFailed(HubMigrateError):
    """
    A specific migration could not be applied and committed.

    Raised when the migration itself, the paired version update or the
    commit of their shared transaction fails. Migrations committed before
    this one stay applied.

    Attributes:
        name: Name of the failed migration
        index: 1-based catalog position of the failed migration
        cause: Underlying exception
    """

    def __init__(self, name: str, index: int, cause: Optional[BaseException] = None):
        self.name = name
        self.index = index
        self.cause = cause
        message = f"Migration {index:03d} '{name}' failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
