"""Migration data models.

``MigrationDefinition`` is what lives on disk, ``MigrationRecord`` is a row
of ``schema_migrations``, and the remaining models are what the runner
hands back to the orchestrator, the ops layer and the CLI.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MigrationDefinition(BaseModel):
    """One ``NNN_name.sql`` file and, when present, its paired rollback script."""

    model_config = ConfigDict(frozen=True)

    filename: str
    body: str
    checksum: str
    rollback_body: str | None = None

    @property
    def rollback_filename(self) -> str:
        return rollback_filename_for(self.filename)


class MigrationRecord(BaseModel):
    """A row of the ``schema_migrations`` tracking table."""

    model_config = ConfigDict(frozen=True)

    id: int
    filename: str
    checksum: str
    executed_at: datetime
    execution_time_ms: int
    success: bool


class MigrationResult(BaseModel):
    """Outcome of one ``run_pending()`` batch."""

    success: bool
    migrations_run: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    total_time_ms: int = 0


class LastMigration(BaseModel):
    filename: str
    executed_at: datetime


class MigrationStatus(BaseModel):
    """Applied/pending summary for operators."""

    total: int
    executed: int
    pending: list[str] = Field(default_factory=list)
    last_migration: LastMigration | None = None


class RollbackOutcome(BaseModel):
    """Outcome of reversing the most recently applied migration."""

    success: bool
    rolled_back: str | None = None
    error: str | None = None


class ChecksumState(str, Enum):
    OK = "ok"
    MISMATCH = "mismatch"
    MISSING = "missing"


class ChecksumEntry(BaseModel):
    filename: str
    state: ChecksumState
    recorded: str
    current: str | None = None


class ChecksumReport(BaseModel):
    """Applied migrations compared against the definitions currently on disk."""

    entries: list[ChecksumEntry] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        return all(e.state == ChecksumState.OK for e in self.entries)

    @property
    def drifted(self) -> list[ChecksumEntry]:
        return [e for e in self.entries if e.state != ChecksumState.OK]


ROLLBACK_SUFFIX = ".rollback.sql"


def rollback_filename_for(filename: str) -> str:
    """``002_contacts.sql`` -> ``002_contacts.rollback.sql``."""
    stem = filename[: -len(".sql")] if filename.endswith(".sql") else filename
    return f"{stem}{ROLLBACK_SUFFIX}"


__all__ = [
    "ROLLBACK_SUFFIX",
    "ChecksumEntry",
    "ChecksumReport",
    "ChecksumState",
    "LastMigration",
    "MigrationDefinition",
    "MigrationRecord",
    "MigrationResult",
    "MigrationStatus",
    "RollbackOutcome",
    "rollback_filename_for",
]
