"""
Connection management for the migration store.

This module wraps a SQLAlchemy engine behind the small interface the
migration runner depends on: open a connection, run a function inside a
transaction on it, close it.
"""

import time
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Any, Optional, Callable, Iterator, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Engine, Connection as SAConnection
from sqlalchemy.exc import SQLAlchemyError

from .engine import DatabaseConfig
from .exceptions import PersistenceError
from ..config.logging_config import MigrationLoggerAdapter, ROOT_LOGGER_NAME

T = TypeVar('T')


class Connection:
    """
    A single open connection to the store.

    Each call to transaction() runs inside its own begin/commit boundary;
    the SQLAlchemy connection passed to the function is the transactional
    scope.
    """

    def __init__(self, sa_connection: SAConnection, logger: MigrationLoggerAdapter):
        self._conn = sa_connection
        self.logger = logger

    def transaction(self, func: Callable[[SAConnection], T], operation: str = 'transaction') -> T:
        """
        Run func inside a transaction.

        The transaction commits when func returns and rolls back when it
        raises; the exception is re-raised unchanged. A failing commit
        raises as well.

        Args:
            func: Callable receiving the transactional scope
            operation: Description used in log messages

        Returns:
            Whatever func returns
        """
        start_time = time.time()
        try:
            with self._conn.begin():
                result = func(self._conn)
        except Exception as e:
            self.logger.transaction(operation, False, time.time() - start_time, str(e))
            raise

        self.logger.transaction(operation, True, time.time() - start_time)
        return result

    def close(self) -> None:
        self._conn.close()


class ConnectionManager:
    """
    Main connection manager for the migration store.

    Builds the engine from the 'database' section of the main configuration
    and hands out short-lived connections.
    """

    def __init__(self, main_config: Dict[str, Any], engine: Optional[Engine] = None):
        """
        Initialize connection manager with configuration.

        Args:
            main_config: Main configuration dictionary
            engine: Pre-built engine, bypassing the configuration's database section
        """
        self.main_config = main_config
        db_config = main_config.get('database', {})
        self.db_type = db_config.get('type', 'sqlite')

        if engine is None:
            db_path = db_config.get('path')
            if self.db_type in ('sqlite', 'duckdb') and db_path and db_path != ':memory:' \
                    and not db_config.get('url'):
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

            engine = DatabaseConfig.get_engine(self.db_type, {
                'url': db_config.get('url'),
                'database': db_path,
                'engine_args': db_config.get('engine_args', {}),
            })

        self.engine = engine
        self.db_path = engine.url.database or 'unknown'

        self.logger = MigrationLoggerAdapter(
            logging.getLogger(f'{ROOT_LOGGER_NAME}.connection'),
            {'component': 'connection_manager', 'db_path': self.db_path}
        )
        self.logger.debug(f"Connection manager initialized: {self.db_path}")

    def open_connection(self) -> Connection:
        """
        Open a new connection.

        Raises:
            PersistenceError: If the store cannot be reached
        """
        try:
            sa_connection = self.engine.connect()
        except SQLAlchemyError as e:
            self.logger.connection_event('error', str(e))
            raise PersistenceError(f"Unable to open database connection: {e}") from e

        self.logger.connection_event('opened')
        return Connection(sa_connection, self.logger)

    def close_connection(self, conn: Connection) -> None:
        """
        Close a connection, returning it to the pool.

        Raises:
            PersistenceError: If closing fails
        """
        try:
            conn.close()
        except SQLAlchemyError as e:
            self.logger.connection_event('error', str(e))
            raise PersistenceError(f"Unable to close database connection: {e}") from e

        self.logger.connection_event('closed')

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """
        Open a connection for the duration of a with block.

        Usage:
            with manager.connection() as conn:
                conn.transaction(lambda scope: scope.execute(...))
        """
        conn = self.open_connection()
        try:
            yield conn
        finally:
            self.close_connection(conn)

    def health_check(self) -> Dict[str, Any]:
        """Perform health check on the database connection."""
        start_time = time.time()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text("SELECT 1")).scalar()
                if result != 1:
                    raise RuntimeError("Basic query failed")

            return {
                'status': 'healthy',
                'database_type': self.engine.dialect.name,
                'database_path': self.db_path,
                'response_time_ms': round((time.time() - start_time) * 1000, 2),
                'timestamp': time.time()
            }

        except (SQLAlchemyError, RuntimeError) as e:
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database_path': self.db_path,
                'timestamp': time.time()
            }

    def close(self) -> None:
        """Dispose of the engine and all pooled connections."""
        self.engine.dispose()
        self.logger.debug("Connection manager shutdown complete")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
