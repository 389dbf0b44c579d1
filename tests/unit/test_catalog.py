"""Tests for migration definitions and the catalog."""

import pytest
from sqlalchemy import text

from hubmigrate.core import CatalogError
from hubmigrate.migrations import (
    Catalog, FunctionMigration, Migration, SQLMigration,
    as_catalog, load_sql_migrations, split_statements
)


def noop(scope):
    pass


class TestCatalog:

    def test_indexes_from_one(self):
        first = FunctionMigration('first', noop)
        second = FunctionMigration('second', noop)
        catalog = Catalog([first, second])

        assert len(catalog) == 2
        assert catalog[1] is first
        assert catalog[2] is second
        assert catalog.names == ['first', 'second']

    @pytest.mark.parametrize("index", [0, 3, -1])
    def test_out_of_range(self, index):
        catalog = Catalog([FunctionMigration('a', noop), FunctionMigration('b', noop)])
        with pytest.raises(IndexError):
            catalog[index]

    def test_pending(self):
        catalog = Catalog(FunctionMigration(f"m{i}", noop) for i in range(1, 5))

        assert [(i, m.name) for i, m in catalog.pending(2)] == [(3, 'm3'), (4, 'm4')]
        assert list(catalog.pending(4)) == []
        assert [i for i, _ in catalog.pending(0)] == [1, 2, 3, 4]

    def test_rejects_duplicate_names(self):
        with pytest.raises(CatalogError, match="Duplicate"):
            Catalog([FunctionMigration('same', noop), FunctionMigration('same', noop)])

    def test_rejects_non_migrations(self):
        with pytest.raises(CatalogError, match="entry 2"):
            Catalog([FunctionMigration('ok', noop), "DROP TABLE users"])

    def test_rejects_empty_name(self):
        with pytest.raises(CatalogError, match="empty name"):
            Catalog([FunctionMigration('  ', noop)])

    def test_duck_typed_migration(self):
        """Any object with a name and apply() qualifies."""
        class Custom:
            name = 'custom'

            def apply(self, scope):
                pass

        assert isinstance(Custom(), Migration)
        assert Catalog([Custom()]).names == ['custom']

    def test_as_catalog(self):
        catalog = Catalog([])
        assert as_catalog(catalog) is catalog
        assert len(as_catalog([FunctionMigration('x', noop)])) == 1


class TestSQLMigration:

    def test_splits_script(self):
        migration = SQLMigration('script', "CREATE TABLE a (id INT);\nCREATE TABLE b (id INT);\n")
        assert migration.statements == ('CREATE TABLE a (id INT)', 'CREATE TABLE b (id INT)')

    def test_apply(self, conn_manager):
        migration = SQLMigration('users', [
            "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)",
            "INSERT INTO users (name) VALUES ('admin')",
        ])
        with conn_manager.connection() as conn:
            conn.transaction(migration.apply)

        with conn_manager.engine.connect() as conn:
            assert conn.execute(text("SELECT name FROM users")).scalar() == 'admin'

    def test_split_statements_drops_comment_only_chunks(self):
        script = """
        -- Migration 001: users
        CREATE TABLE users (id INTEGER);
        -- trailing comment
        """
        statements = split_statements(script)
        assert len(statements) == 1
        assert 'CREATE TABLE users' in statements[0]


class TestLoadSQLMigrations:

    def test_loads_in_numeric_order(self, tmp_path):
        (tmp_path / '002_add_email.sql').write_text("ALTER TABLE users ADD COLUMN email TEXT;")
        (tmp_path / '001_create_users.sql').write_text("CREATE TABLE users (id INTEGER);")
        (tmp_path / 'README.md').write_text("not a migration")

        migrations = load_sql_migrations(tmp_path)

        assert [m.name for m in migrations] == ['001_create_users', '002_add_email']
        assert migrations[1].statements == ('ALTER TABLE users ADD COLUMN email TEXT',)

    def test_gap_in_numbering(self, tmp_path):
        (tmp_path / '001_a.sql').write_text("SELECT 1;")
        (tmp_path / '003_c.sql').write_text("SELECT 1;")

        with pytest.raises(CatalogError, match="expected 002"):
            load_sql_migrations(tmp_path)

    def test_repeated_number(self, tmp_path):
        (tmp_path / '001_a.sql').write_text("SELECT 1;")
        (tmp_path / '001_b.sql').write_text("SELECT 1;")

        with pytest.raises(CatalogError):
            load_sql_migrations(tmp_path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(CatalogError, match="not found"):
            load_sql_migrations(tmp_path / 'absent')

    def test_empty_directory(self, tmp_path):
        assert load_sql_migrations(tmp_path) == []
