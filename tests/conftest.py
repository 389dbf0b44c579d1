"""
Shared fixtures for the migration tests
"""

import pytest

from hubmigrate.core import ConnectionManager
from hubmigrate.migrations import FunctionMigration, MigrationRunner, VersionStore


@pytest.fixture
def db_config(tmp_path):
    """Configuration pointing at a fresh SQLite file"""
    return {
        'database': {
            'type': 'sqlite',
            'path': str(tmp_path / 'hub.db')
        }
    }


@pytest.fixture
def conn_manager(db_config):
    """Connection manager for the temporary database"""
    manager = ConnectionManager(db_config)
    yield manager
    manager.close()


@pytest.fixture
def version_store(conn_manager):
    return VersionStore(conn_manager)


@pytest.fixture
def runner(conn_manager, version_store):
    return MigrationRunner(conn_manager, version_store)


@pytest.fixture
def call_log():
    """Names of migrations in the order their apply() was invoked"""
    return []


@pytest.fixture
def make_migration(call_log):
    """Factory for instrumented migrations that record each invocation"""
    def factory(name, sql=None, fail=False):
        def apply(scope):
            call_log.append(name)
            if sql:
                scope.exec_driver_sql(sql)
            if fail:
                raise RuntimeError(f"{name} exploded")
        return FunctionMigration(name, apply)
    return factory
