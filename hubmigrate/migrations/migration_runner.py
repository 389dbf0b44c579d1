"""
Migration runner.

Applies every catalog entry past the stored version, one at a time. Each
migration and the matching version update share a single transaction, so a
crash or failure leaves the store at the last committed migration and the
next run resumes right after it.
"""

import time
import logging
from functools import partial
from typing import Dict, Iterable, Optional, Union

from sqlalchemy.engine import Connection as SAConnection

from ..config.logging_config import MigrationLoggerAdapter, ROOT_LOGGER_NAME
from ..core.connection import ConnectionManager
from ..core.exceptions import CatalogError, MigrationFailed, PersistenceError
from ..models.version import MigrationInfo, MigrationState, MigrationStatus, RunResult
from .migration import Catalog, Migration, as_catalog
from .version_store import VersionStore


class MigrationRunner:
    """
    Applies pending migrations in catalog order.

    Runs are strictly sequential and assume a single runner per store at a
    time; there is no cross-process locking.
    """

    def __init__(self, connection_manager: ConnectionManager,
                 version_store: Optional[VersionStore] = None):
        """
        Initialize migration runner.

        Args:
            connection_manager: Connection manager for the store
            version_store: Version store; defaults to one on the same connection manager
        """
        self.conn_manager = connection_manager
        self.version_store = version_store or VersionStore(connection_manager)
        self.logger = MigrationLoggerAdapter(
            logging.getLogger(f'{ROOT_LOGGER_NAME}.{self.__class__.__name__.lower()}'),
            {'component': 'migration_runner',
             'db_path': getattr(connection_manager, 'db_path', 'unknown')}
        )

        # State reached by each index touched during the last run
        self.states: Dict[int, MigrationState] = {}

    def get_current_version(self) -> int:
        """Get the index of the last committed migration."""
        return self.version_store.get().version

    def run(self, catalog: Union[Catalog, Iterable[Migration]]) -> RunResult:
        """
        Run all pending migrations.

        Args:
            catalog: Ordered migrations; a plain sequence is wrapped in a Catalog

        Returns:
            RunResult describing what was applied

        Raises:
            MigrationFailed: A migration, its version update or its commit failed
            PersistenceError: The version record or a connection could not be handled
            CatalogError: The stored version lies beyond the end of the catalog
        """
        catalog = as_catalog(catalog)
        current_version = self.get_current_version()
        self._check_catalog(catalog, current_version)

        pending = list(catalog.pending(current_version))
        self.states = {index: MigrationState.PENDING for index, _ in pending}

        if not pending:
            self.logger.info(f"No pending migrations (version {current_version})")
            return RunResult(starting_version=current_version, final_version=current_version)

        self.logger.debug(f"Found {len(pending)} pending migrations: {[m.name for _, m in pending]}")

        applied = []
        for index, migration in pending:
            self._apply_migration(index, migration)
            applied.append(migration.name)

        self.logger.info(f"Successfully applied {len(applied)} migrations, now at version {index}")
        return RunResult(starting_version=current_version, final_version=index, applied=applied)

    def status(self, catalog: Union[Catalog, Iterable[Migration]]) -> MigrationStatus:
        """
        Get current migration status against a catalog.

        Args:
            catalog: Ordered migrations

        Returns:
            MigrationStatus with one entry per catalog migration
        """
        catalog = as_catalog(catalog)
        current_version = self.get_current_version()
        self._check_catalog(catalog, current_version)

        migrations = [
            MigrationInfo(
                index=index,
                name=migration.name,
                state=MigrationState.COMMITTED if index <= current_version else MigrationState.PENDING
            )
            for index, migration in enumerate(catalog, start=1)
        ]

        return MigrationStatus(
            current_version=current_version,
            latest_available_version=len(catalog),
            migrations=migrations
        )

    def _check_catalog(self, catalog: Catalog, current_version: int) -> None:
        if current_version > len(catalog):
            raise CatalogError(
                f"Stored version {current_version} exceeds catalog length {len(catalog)}; "
                f"released migrations must never be removed"
            )

    def _apply_migration(self, index: int, migration: Migration) -> None:
        """
        Apply a single migration and record its index in one transaction.

        Args:
            index: Catalog position of the migration
            migration: Migration to apply
        """
        self.states[index] = MigrationState.APPLYING

        try:
            conn = self.conn_manager.open_connection()
        except PersistenceError as e:
            self.states[index] = MigrationState.FAILED
            raise PersistenceError(f"Migration {index:03d} '{migration.name}': {e}") from e
        except Exception:
            self.states[index] = MigrationState.FAILED
            raise

        start_time = time.time()
        try:
            conn.transaction(
                partial(self._apply_and_record, index=index, migration=migration),
                operation=f"migration {index:03d}"
            )
        except Exception as e:
            self.states[index] = MigrationState.FAILED
            self.logger.migration_event('failed', index, migration.name, error=str(e))
            self.logger.debug(f"Migration failure details: {e}", exc_info=True)
            self._close_after_failure(conn)
            raise MigrationFailed(migration.name, index, e) from e

        self.states[index] = MigrationState.COMMITTED
        self.logger.migration_event('committed', index, migration.name, duration=time.time() - start_time)

        try:
            self.conn_manager.close_connection(conn)
        except PersistenceError as e:
            raise PersistenceError(
                f"Migration {index:03d} '{migration.name}' committed but closing its connection failed: {e}"
            ) from e

    def _apply_and_record(self, scope: SAConnection, index: int, migration: Migration) -> None:
        self.logger.migration_event('applying', index, migration.name)
        migration.apply(scope)
        self.version_store.set(scope, index)

    def _close_after_failure(self, conn) -> None:
        """Close a connection whose transaction already failed; the original error wins."""
        try:
            self.conn_manager.close_connection(conn)
        except PersistenceError as e:
            self.logger.error(f"Failed to close connection after migration failure: {e}")
