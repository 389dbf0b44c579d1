"""
Database engine configuration for the supported storage backends
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from typing import Dict, Any, List
import logging

logger = logging.getLogger(__name__)

SUPPORTED_DATABASES = ['sqlite', 'duckdb', 'postgresql']


class DatabaseConfig:
    """Configuration manager for database engines"""

    @staticmethod
    def get_engine(db_type: str, connection_params: Dict[str, Any]) -> Engine:
        """
        Create SQLAlchemy engine based on database type and parameters

        Args:
            db_type: Database type ('sqlite', 'duckdb', 'postgresql')
            connection_params: Database connection parameters. An explicit
                'url' takes precedence over the per-type parameters.

        Returns:
            SQLAlchemy Engine instance
        """
        if db_type not in SUPPORTED_DATABASES:
            raise ValueError(f"Unsupported database type: {db_type}")

        url = connection_params.get('url')
        if url:
            conn_string = url
        elif db_type == 'duckdb':
            # Requires duckdb-engine
            database = connection_params.get('database') or ':memory:'
            conn_string = f"duckdb:///{database}"
        elif db_type == 'sqlite':
            database = connection_params.get('database') or ':memory:'
            conn_string = f"sqlite:///{database}"
        else:
            user = connection_params.get('user', 'postgres')
            password = connection_params.get('password', '')
            host = connection_params.get('host', 'localhost')
            port = connection_params.get('port', 5432)
            database = connection_params.get('database') or 'postgres'
            conn_string = f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}"

        # A url may name a different backend than db_type
        backend = make_url(conn_string).get_backend_name()

        engine_args = dict(connection_params.get('engine_args') or {})
        engine_args.setdefault('pool_pre_ping', True)
        engine_args.setdefault('echo', False)
        if backend == 'postgresql':
            engine_args.setdefault('pool_size', 5)
            engine_args.setdefault('max_overflow', 5)

        engine = create_engine(conn_string, **engine_args)
        if engine.dialect.name == 'sqlite':
            DatabaseConfig._enable_transactional_ddl(engine)

        logger.info(f"Created {engine.dialect.name} engine: {engine.url.render_as_string(hide_password=True)}")
        return engine

    @staticmethod
    def _enable_transactional_ddl(engine: Engine) -> None:
        """
        Make pysqlite emit BEGIN itself so DDL joins the enclosing transaction.

        The driver otherwise runs CREATE/ALTER statements outside of any
        transaction, which would leave half-applied migrations behind on
        rollback.
        """
        @event.listens_for(engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    @staticmethod
    def get_supported_databases() -> List[str]:
        """Get list of supported database types"""
        return list(SUPPORTED_DATABASES)
