"""
Version tracking models.

This module defines the Pydantic models for the persisted version record
and for reporting migration progress.
"""

from enum import Enum
from typing import List
from pydantic import BaseModel, Field


class VersionRecord(BaseModel):
    """
    Persisted migration version.

    Stored as JSON under a fixed key in the settings table. The version is
    the catalog index of the last committed migration; 0 means none.
    """

    version: int = Field(default=0, ge=0, description="Index of the last committed migration")

    model_config = {
        "json_schema_extra": {
            "example": {"version": 3}
        }
    }


class MigrationState(str, Enum):
    """Lifecycle of a single catalog index within a run."""
    PENDING = "pending"
    APPLYING = "applying"
    COMMITTED = "committed"
    FAILED = "failed"


class MigrationInfo(BaseModel):
    """A catalog entry together with its state."""

    index: int = Field(..., ge=1, description="1-based catalog position")
    name: str = Field(..., description="Migration name")
    state: MigrationState = Field(default=MigrationState.PENDING)


class MigrationStatus(BaseModel):
    """Snapshot of the store's version against a catalog."""

    current_version: int = Field(..., ge=0)
    latest_available_version: int = Field(..., ge=0)
    migrations: List[MigrationInfo] = Field(default_factory=list)

    @property
    def pending(self) -> List[MigrationInfo]:
        """Entries not yet committed."""
        return [m for m in self.migrations if m.state != MigrationState.COMMITTED]

    @property
    def is_up_to_date(self) -> bool:
        """Check if every catalog entry has been committed."""
        return self.current_version == self.latest_available_version


class RunResult(BaseModel):
    """Outcome of a successful run."""

    starting_version: int = Field(..., ge=0)
    final_version: int = Field(..., ge=0)
    applied: List[str] = Field(default_factory=list, description="Names of migrations applied, in order")

    @property
    def applied_count(self) -> int:
        return len(self.applied)
