"""
Data models using Pydantic for validation and type safety.
"""

from .version import (
    VersionRecord, MigrationState, MigrationInfo,
    MigrationStatus, RunResult
)

__all__ = [
    'VersionRecord', 'MigrationState', 'MigrationInfo',
    'MigrationStatus', 'RunResult'
]
