"""Schema migrations: ordered SQL files, tracked with checksums.

Modules
-------
models      MigrationDefinition, MigrationRecord and runner result models
store       Read-only view of definitions on disk and ``schema_migrations``
runner      Applies pending migrations, reverses the last one, verifies checksums
statements  Splits a migration body into statements
"""

from .models import (
    ChecksumEntry,
    ChecksumReport,
    ChecksumState,
    LastMigration,
    MigrationDefinition,
    MigrationRecord,
    MigrationResult,
    MigrationStatus,
    RollbackOutcome,
)
from .runner import NO_MIGRATIONS_TO_ROLLBACK, MigrationRunner
from .store import TRACKING_TABLE, MigrationStore

__all__ = [
    "NO_MIGRATIONS_TO_ROLLBACK",
    "TRACKING_TABLE",
    "ChecksumEntry",
    "ChecksumReport",
    "ChecksumState",
    "LastMigration",
    "MigrationDefinition",
    "MigrationRecord",
    "MigrationResult",
    "MigrationRunner",
    "MigrationStatus",
    "MigrationStore",
    "RollbackOutcome",
]
