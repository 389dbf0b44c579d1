"""
Command line interface for the migration runner.

Usage:
    hubmigrate status  --catalog myapp.migrations:CATALOG
    hubmigrate migrate --catalog myapp.migrations:CATALOG --config hub.yaml
    hubmigrate migrate --catalog migrations/          # directory of NNN_name.sql files
"""

import os
import sys
import argparse
import importlib
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich import box
from rich.markup import escape

from . import __version__
from .config import load_config, setup_migration_logging
from .core import CatalogError, ConnectionManager, HubMigrateError, MigrationFailed
from .migrations import Catalog, MigrationRunner, VersionStore, as_catalog, load_sql_migrations
from .models import MigrationState

STATE_STYLES = {
    MigrationState.COMMITTED: "green",
    MigrationState.PENDING: "yellow",
    MigrationState.APPLYING: "cyan",
    MigrationState.FAILED: "red",
}


def load_catalog(reference: str) -> Catalog:
    """
    Resolve a catalog reference.

    Args:
        reference: Either a directory of NNN_name.sql files or 'module:attribute',
            where the attribute is a Catalog, a sequence of migrations or a
            zero-argument callable returning one

    Returns:
        The resolved Catalog
    """
    if Path(reference).is_dir():
        return Catalog(load_sql_migrations(reference))

    module_name, sep, attr_name = reference.partition(':')
    if not sep or not module_name or not attr_name:
        raise CatalogError(f"Catalog reference must be a directory or 'module:attribute', got '{reference}'")

    # Console scripts do not put the working directory on sys.path
    project_path = os.getcwd()
    if project_path not in sys.path:
        sys.path.insert(0, project_path)

    try:
        importlib.invalidate_caches()
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise CatalogError(f"Cannot import catalog module '{module_name}': {e}") from e

    try:
        target = getattr(module, attr_name)
    except AttributeError as e:
        raise CatalogError(f"Module '{module_name}' has no attribute '{attr_name}'") from e

    if callable(target) and not isinstance(target, Catalog):
        target = target()

    try:
        return as_catalog(target)
    except TypeError as e:
        raise CatalogError(f"'{reference}' is not a sequence of migrations") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='hubmigrate',
        description='Apply versioned migrations to a database',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--config', help='YAML configuration file')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', required=True)

    status_parser = subparsers.add_parser('status', help='Show applied and pending migrations')
    status_parser.add_argument('--catalog', required=True,
                               help="Catalog as 'module:attribute' or a migrations directory")

    migrate_parser = subparsers.add_parser('migrate', help='Apply pending migrations')
    migrate_parser.add_argument('--catalog', required=True,
                                help="Catalog as 'module:attribute' or a migrations directory")

    return parser


def _print_status(console: Console, runner: MigrationRunner, catalog: Catalog) -> None:
    status = runner.status(catalog)

    table = Table(title=f"Migrations (version {status.current_version}/{status.latest_available_version})",
                  box=box.ROUNDED)
    table.add_column("#", justify="right", style="bold")
    table.add_column("Migration")
    table.add_column("State")

    for info in status.migrations:
        style = STATE_STYLES[info.state]
        table.add_row(f"{info.index:03d}", escape(info.name), f"[{style}]{info.state.value}[/{style}]")

    console.print(table)
    if status.is_up_to_date:
        console.print("[green]Database is up to date.[/green]")
    else:
        console.print(f"[yellow]{len(status.pending)} pending migration(s).[/yellow]")


def _migrate(console: Console, runner: MigrationRunner, catalog: Catalog) -> None:
    result = runner.run(catalog)

    if not result.applied:
        console.print(f"[green]Nothing to migrate, already at version {result.final_version}.[/green]")
        return

    for name in result.applied:
        console.print(f"  [green]applied[/green] {escape(name)}")
    console.print(
        f"[bold green]Migrated from version {result.starting_version} "
        f"to {result.final_version}.[/bold green]"
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    console = Console()

    try:
        config = load_config(args.config)
        if args.debug:
            config['logging']['level'] = 'DEBUG'
        setup_migration_logging(config)

        catalog = load_catalog(args.catalog)

        with ConnectionManager(config) as conn_manager:
            runner = MigrationRunner(conn_manager, VersionStore.from_config(conn_manager, config))
            if args.command == 'status':
                _print_status(console, runner, catalog)
            else:
                _migrate(console, runner, catalog)

    except MigrationFailed as e:
        console.print(f"[bold red]Migration {e.index:03d} '{escape(e.name)}' failed:[/bold red] {escape(str(e.cause))}")
        console.print("[red]Earlier migrations remain applied. Fix the migration or the data and rerun.[/red]")
        return 1
    except HubMigrateError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        return 1

    return 0
