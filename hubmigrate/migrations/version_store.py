"""
Persistent storage of the migration version record.

The record lives in a key/value settings table as a single row whose value
is the JSON document {"version": N}.
"""

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import MetaData, Table, Column, String, Text, select, insert, update
from sqlalchemy.engine import Connection as SAConnection
from sqlalchemy.exc import SQLAlchemyError

from ..config.logging_config import MigrationLoggerAdapter, ROOT_LOGGER_NAME
from ..core.connection import ConnectionManager
from ..core.exceptions import PersistenceError
from ..models.version import VersionRecord

DEFAULT_SETTINGS_TABLE = 'setting'
DEFAULT_VERSION_KEY = 'migration_version'


class VersionStore:
    """
    Reads and writes the version record.

    get() manages its own connection and transaction. set() only writes
    within a scope owned by the caller, so the version update commits or
    rolls back together with the caller's migration.
    """

    def __init__(self, connection_manager: ConnectionManager,
                 settings_table: str = DEFAULT_SETTINGS_TABLE,
                 version_key: str = DEFAULT_VERSION_KEY):
        """
        Initialize version store.

        Args:
            connection_manager: Connection manager for the store
            settings_table: Name of the key/value settings table
            version_key: Key of the version record row
        """
        self.conn_manager = connection_manager
        self.version_key = version_key
        self.metadata = MetaData()
        self.table = Table(
            settings_table,
            self.metadata,
            Column('key', String(255), primary_key=True),
            Column('value', Text, nullable=True),
        )
        self.logger = MigrationLoggerAdapter(
            logging.getLogger(f'{ROOT_LOGGER_NAME}.versionstore'),
            {'component': 'version_store', 'db_path': connection_manager.db_path}
        )

    @classmethod
    def from_config(cls, connection_manager: ConnectionManager, main_config: dict) -> 'VersionStore':
        """Create a version store using the 'versioning' section of the main config."""
        versioning = main_config.get('versioning', {})
        return cls(
            connection_manager,
            settings_table=versioning.get('settings_table', DEFAULT_SETTINGS_TABLE),
            version_key=versioning.get('version_key', DEFAULT_VERSION_KEY),
        )

    def ensure_schema(self) -> None:
        """Create the settings table if it does not exist."""
        try:
            self.metadata.create_all(self.conn_manager.engine, checkfirst=True)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Unable to create settings table '{self.table.name}': {e}") from e

    def get(self) -> VersionRecord:
        """
        Return the current version record, creating {version: 0} if absent.

        Raises:
            PersistenceError: If the record cannot be read, created or decoded
        """
        self.ensure_schema()

        conn = self.conn_manager.open_connection()
        try:
            record = conn.transaction(self._read_or_create, operation='read version')
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read version record '{self.version_key}': {e}") from e
        finally:
            self.conn_manager.close_connection(conn)

        self.logger.debug(f"Current version: {record.version}")
        return record

    def set(self, scope: SAConnection, version: int) -> None:
        """
        Write version within the caller's transaction.

        Does not begin or commit anything.

        Args:
            scope: Transactional scope owned by the caller
            version: Index of the migration being committed

        Raises:
            PersistenceError: If the version is invalid or the write fails
        """
        try:
            value = VersionRecord(version=version).model_dump_json()
        except ValidationError as e:
            raise PersistenceError(f"Invalid version {version!r}: {e}") from e

        try:
            result = scope.execute(
                update(self.table)
                .where(self.table.c.key == self.version_key)
                .values(value=value)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to write version {version}: {e}") from e

        # Some drivers report -1 when the count is unknown
        if result.rowcount == 0:
            raise PersistenceError(f"Version record '{self.version_key}' does not exist")

        self.logger.debug(f"Version set to {version}")

    def _read_or_create(self, scope: SAConnection) -> VersionRecord:
        row = scope.execute(
            select(self.table.c.value).where(self.table.c.key == self.version_key)
        ).first()

        if row is None:
            record = VersionRecord()
            scope.execute(
                insert(self.table).values(key=self.version_key, value=record.model_dump_json())
            )
            self.logger.info(f"Created version record '{self.version_key}'")
            return record

        return self._decode(row.value)

    def _decode(self, value: Optional[str]) -> VersionRecord:
        if not value:
            return VersionRecord()
        try:
            return VersionRecord.model_validate_json(value)
        except ValidationError as e:
            raise PersistenceError(f"Corrupt version record '{self.version_key}': {e}") from e
