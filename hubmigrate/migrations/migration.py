"""
Migration definitions and the migration catalog.

A migration is any object with a ``name`` and an ``apply(scope)`` method
that raises on failure. The catalog fixes their order: entry 1 is the
first migration ever released, and entries are only ever appended.
"""

import re
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any, Callable, Iterable, Iterator, List, Protocol, Sequence, Tuple, Union,
    runtime_checkable
)

from sqlalchemy.engine import Connection as SAConnection

from ..core.exceptions import CatalogError

logger = logging.getLogger(__name__)

# Pattern to match migration files: NNN_name.sql
MIGRATION_FILE_PATTERN = re.compile(r'^(\d{3})_(.+)\.sql$')


@runtime_checkable
class Migration(Protocol):
    """Capability every catalog entry provides."""

    @property
    def name(self) -> str:
        """Stable human-readable name, used in diagnostics."""
        ...

    def apply(self, scope: SAConnection) -> None:
        """Apply the migration inside the given transactional scope."""
        ...


@dataclass(frozen=True)
class SQLMigration:
    """
    Migration made of raw SQL statements.

    Statements run in order on the transactional scope. A single string is
    split on ';'.
    """

    name: str
    statements: Union[str, Sequence[str]] = field(default_factory=tuple)

    def __post_init__(self):
        if isinstance(self.statements, str):
            object.__setattr__(self, 'statements', tuple(split_statements(self.statements)))
        else:
            object.__setattr__(self, 'statements', tuple(self.statements))

    def apply(self, scope: SAConnection) -> None:
        if not self.statements:
            logger.warning(f"Migration '{self.name}' has no SQL to execute")
        for statement in self.statements:
            scope.exec_driver_sql(statement)

    def __str__(self) -> str:
        return f"SQLMigration {self.name} ({len(self.statements)} statements)"


@dataclass(frozen=True)
class FunctionMigration:
    """Migration backed by a plain function taking the transactional scope."""

    name: str
    func: Callable[[SAConnection], Any]

    def apply(self, scope: SAConnection) -> None:
        self.func(scope)


class _Sentinel:
    """Occupies catalog index 0 so real migrations start at 1."""

    name = "<sentinel>"

    def apply(self, scope: SAConnection) -> None:
        pass


SENTINEL = _Sentinel()


class Catalog:
    """
    Ordered, append-only sequence of migrations indexed from 1.

    Index i matches version i in the version record: after migration i
    commits, the stored version is i.
    """

    def __init__(self, migrations: Iterable[Migration] = ()):
        entries = list(migrations)
        seen = set()

        for position, migration in enumerate(entries, start=1):
            if not isinstance(migration, Migration):
                raise CatalogError(f"Catalog entry {position} ({migration!r}) is not a migration")
            if not isinstance(migration.name, str) or not migration.name.strip():
                raise CatalogError(f"Catalog entry {position} has an empty name")
            if migration.name in seen:
                raise CatalogError(f"Duplicate migration name '{migration.name}' at entry {position}")
            seen.add(migration.name)

        self._entries: List[Migration] = [SENTINEL] + entries

    def __len__(self) -> int:
        return len(self._entries) - 1

    def __getitem__(self, index: int) -> Migration:
        if not isinstance(index, int) or not 1 <= index <= len(self):
            raise IndexError(f"Catalog index out of range: {index} (valid: 1..{len(self)})")
        return self._entries[index]

    def __iter__(self) -> Iterator[Migration]:
        return iter(self._entries[1:])

    def __repr__(self) -> str:
        return f"Catalog({self.names!r})"

    @property
    def names(self) -> List[str]:
        return [m.name for m in self]

    def pending(self, version: int) -> Iterator[Tuple[int, Migration]]:
        """
        Yield (index, migration) for every entry after version, in order.

        Args:
            version: Index of the last committed migration
        """
        for index in range(version + 1, len(self._entries)):
            yield index, self._entries[index]


def as_catalog(migrations: Union[Catalog, Iterable[Migration]]) -> Catalog:
    """Wrap a plain sequence of migrations in a Catalog."""
    if isinstance(migrations, Catalog):
        return migrations
    return Catalog(migrations)


def split_statements(script: str) -> List[str]:
    """
    Split a SQL script into individual statements.

    Chunks holding nothing but comments and whitespace are dropped.
    """
    statements = []
    for chunk in script.split(';'):
        code_lines = [
            line for line in chunk.splitlines()
            if line.strip() and not line.strip().startswith('--')
        ]
        if code_lines:
            statements.append(chunk.strip())
    return statements


def load_sql_migrations(directory: Union[str, Path]) -> List[SQLMigration]:
    """
    Build migrations from NNN_name.sql files in a directory.

    Files are ordered by their NNN prefix, which must run 001, 002, ...
    without gaps or repeats. Each migration is named after its file stem.

    Args:
        directory: Directory containing the migration files

    Returns:
        List of SQLMigration objects in catalog order

    Raises:
        CatalogError: If the directory is missing or numbering is not contiguous
    """
    migrations_dir = Path(directory)
    if not migrations_dir.is_dir():
        raise CatalogError(f"Migration directory not found: {migrations_dir}")

    numbered = []
    for file_path in migrations_dir.glob('*.sql'):
        match = MIGRATION_FILE_PATTERN.match(file_path.name)
        if not match:
            logger.debug(f"Ignoring non-migration file {file_path.name}")
            continue
        numbered.append((int(match.group(1)), file_path))

    numbered.sort(key=lambda item: item[0])

    migrations = []
    for expected, (number, file_path) in enumerate(numbered, start=1):
        if number != expected:
            raise CatalogError(
                f"Migration files must be numbered contiguously from 001: "
                f"expected {expected:03d}, found {file_path.name}"
            )
        content = file_path.read_text(encoding='utf-8')
        migrations.append(SQLMigration(name=file_path.stem, statements=content))

    logger.debug(f"Loaded {len(migrations)} migration files from {migrations_dir}")
    return migrations
