"""
Migration logging configuration.

This module sets up logging for the migration system that respects the log
level from the main configuration while providing per-migration and
per-transaction tracking.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Any, Optional

ROOT_LOGGER_NAME = 'hubmigrate'


class SafeFormatter(logging.Formatter):
    """Formatter that provides default values for missing context fields."""

    def format(self, record):
        if not hasattr(record, 'database_context'):
            record.database_context = 'db'
        return super().format(record)


def setup_migration_logging(main_config: Dict[str, Any]) -> logging.Logger:
    """
    Setup migration logging based on main configuration.

    Args:
        main_config: Main configuration dictionary

    Returns:
        Configured package logger
    """
    logging_config = main_config.get('logging', {})
    log_level = str(logging_config.get('level', 'INFO')).upper()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level))

    # Remove any existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = SafeFormatter(
        '%(asctime)s.%(msecs)03d - [%(database_context)s] - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_file = logging_config.get('log_file')
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def log_transaction(logger: logging.Logger, operation: str, success: bool,
                    duration: Optional[float] = None, error: Optional[str] = None) -> None:
    """
    Log database transaction outcome.

    Args:
        logger: Logger instance
        operation: Transaction operation description
        success: Whether transaction committed
        duration: Transaction duration in seconds
        error: Error message if transaction rolled back
    """
    if success:
        message = f"Transaction '{operation}' committed"
        if duration is not None:
            message += f" in {duration:.3f}s"
        logger.debug(message)
    else:
        message = f"Transaction '{operation}' rolled back"
        if error:
            message += f": {error}"
        logger.warning(message)


def log_connection_event(logger: logging.Logger, event: str, details: Optional[str] = None) -> None:
    """
    Log connection lifecycle events.

    Args:
        logger: Logger instance
        event: Event type ('opened', 'closed', 'error')
        details: Additional event details
    """
    if event == 'error':
        logger.error(f"Connection error: {details}")
    elif logger.isEnabledFor(logging.DEBUG):
        message = f"Connection {event}"
        if details:
            message += f": {details}"
        logger.debug(message)


class MigrationLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds database context to log messages.

    Provides convenience methods for the events the runner and the
    connection manager report.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg, kwargs):
        """Add database context to log records."""
        db_path = self.extra.get('db_path') or 'unknown'
        db_name = Path(db_path).stem if db_path not in ('unknown', ':memory:') else db_path

        if 'extra' not in kwargs:
            kwargs['extra'] = {}
        kwargs['extra']['database_context'] = db_name

        return msg, kwargs

    def transaction(self, operation: str, success: bool, duration: Optional[float] = None,
                    error: Optional[str] = None) -> None:
        """Log a database transaction."""
        log_transaction(self, operation, success, duration, error)

    def connection_event(self, event: str, details: Optional[str] = None) -> None:
        """Log a connection event."""
        log_connection_event(self, event, details)

    def migration_event(self, event: str, index: int, name: str,
                        duration: Optional[float] = None, error: Optional[str] = None) -> None:
        """
        Log a migration state change.

        Args:
            event: 'applying', 'committed' or 'failed'
            index: Catalog position of the migration
            name: Migration name
            duration: Time spent on the migration in seconds
            error: Error message for failures
        """
        label = f"{index:03d} '{name}'"
        if event == 'applying':
            self.info(f"Running migration {label}")
        elif event == 'committed':
            suffix = f" in {duration * 1000:.1f}ms" if duration is not None else ""
            self.info(f"Applied migration {label}{suffix}")
        elif event == 'failed':
            self.error(f"Migration {label} failed: {error}")
        else:
            self.debug(f"Migration {label}: {event}")
