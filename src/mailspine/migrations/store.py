"""
Migration store: definitions on disk, records in ``schema_migrations``.

The store is read-only. It answers three questions for the runner: which
migrations exist (``list_definitions``), which have been applied
successfully (``get_applied``), and therefore which are pending
(``get_pending``). Lexicographic filename order is application order, so
definitions are named ``NNN_description.sql``; a paired
``NNN_description.rollback.sql`` holds the reversal script and is never
listed as a definition itself.

Architecture:
    ::

        migrations_dir/                         schema_migrations
        ├── 001_tenants.sql            ──┐      ┌────────────────────────┐
        ├── 001_tenants.rollback.sql     │      │ filename  (UNIQUE)     │
        ├── 002_contacts.sql             ├──►   │ checksum  (sha256 hex) │
        └── 003_campaigns.sql          ──┘      │ executed_at            │
                                                │ execution_time_ms      │
                 list_definitions()             │ success                │
                 get_pending() = defs − applied └────────────────────────┘

Examples:
    >>> store = MigrationStore(adapter, Path("migrations"))
    >>> match store.get_pending():
    ...     case Ok(pending):
    ...         print([d.filename for d in pending])
    ...     case Err(error):
    ...         print(error.message)

Tags:
    migrations, schema, checksum, tracking, mailspine
"""

from __future__ import annotations

from pathlib import Path

from mailspine.core.adapters import DatabaseAdapter
from mailspine.core.errors import SourceUnavailableError, TrackingUnavailableError
from mailspine.core.hashing import compute_checksum
from mailspine.core.logging import get_logger
from mailspine.core.result import Err, Ok, Result, try_result_with
from mailspine.core.timestamps import coerce_datetime

from .models import ROLLBACK_SUFFIX, MigrationDefinition, MigrationRecord, rollback_filename_for

logger = get_logger(__name__)

TRACKING_TABLE = "schema_migrations"

_RECORD_COLUMNS = "id, filename, checksum, executed_at, execution_time_ms, success"


class MigrationStore:
    """Reads migration definitions and applied-migration records."""

    def __init__(self, adapter: DatabaseAdapter, migrations_dir: Path | str) -> None:
        self._adapter = adapter
        self._dir = Path(migrations_dir)

    @property
    def migrations_dir(self) -> Path:
        return self._dir

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def list_definitions(self) -> Result[list[MigrationDefinition]]:
        """All definitions, sorted by filename."""
        if not self._dir.is_dir():
            return Err(SourceUnavailableError(f"Migrations directory not found: {self._dir}"))
        return try_result_with(
            self._read_definitions,
            lambda e: SourceUnavailableError(
                f"Cannot read migrations directory {self._dir}: {e}", cause=e
            ),
        )

    def _read_definitions(self) -> list[MigrationDefinition]:
        definitions = []
        for path in sorted(self._dir.glob("*.sql"), key=lambda p: p.name):
            if path.name.endswith(ROLLBACK_SUFFIX) or not path.is_file():
                continue
            body = path.read_text(encoding="utf-8")
            rollback_path = self._dir / rollback_filename_for(path.name)
            rollback_body = (
                rollback_path.read_text(encoding="utf-8") if rollback_path.is_file() else None
            )
            definitions.append(
                MigrationDefinition(
                    filename=path.name,
                    body=body,
                    checksum=compute_checksum(body),
                    rollback_body=rollback_body,
                )
            )
        logger.debug("migrations.discovered", count=len(definitions), directory=str(self._dir))
        return definitions

    def get_definition(self, filename: str) -> Result[MigrationDefinition | None]:
        """Look up one definition by filename (``Ok(None)`` if absent)."""
        return self.list_definitions().map(
            lambda defs: next((d for d in defs if d.filename == filename), None)
        )

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def get_applied(self) -> Result[set[str]]:
        """Filenames with a successful record."""
        d = self._adapter.dialect
        sql = f"SELECT filename FROM {TRACKING_TABLE} WHERE success = {d.placeholder(0)}"
        return try_result_with(
            lambda: {row[0] for row in self._adapter.query(sql, (True,))},
            lambda e: TrackingUnavailableError(f"Cannot read {TRACKING_TABLE}: {e}", cause=e),
        )

    def get_pending(self) -> Result[list[MigrationDefinition]]:
        """Definitions without a successful record, in application order."""
        match self.list_definitions():
            case Err() as err:
                return err
            case Ok(definitions):
                pass
        match self.get_applied():
            case Err() as err:
                return err
            case Ok(applied):
                return Ok([d for d in definitions if d.filename not in applied])

    def get_records(self) -> Result[list[MigrationRecord]]:
        """Every tracking record, oldest first."""
        sql = f"SELECT {_RECORD_COLUMNS} FROM {TRACKING_TABLE} ORDER BY executed_at, id"
        return try_result_with(
            lambda: [_row_to_record(row) for row in self._adapter.query(sql)],
            lambda e: TrackingUnavailableError(f"Cannot read {TRACKING_TABLE}: {e}", cause=e),
        )

    def get_last_applied(self) -> Result[MigrationRecord | None]:
        """Most recent successful record (ties broken by insertion order)."""
        d = self._adapter.dialect
        sql = (
            f"SELECT {_RECORD_COLUMNS} FROM {TRACKING_TABLE} "
            f"WHERE success = {d.placeholder(0)} "
            "ORDER BY executed_at DESC, id DESC LIMIT 1"
        )
        return try_result_with(
            lambda: _optional_record(self._adapter.query_one(sql, (True,))),
            lambda e: TrackingUnavailableError(f"Cannot read {TRACKING_TABLE}: {e}", cause=e),
        )


def _row_to_record(row: tuple) -> MigrationRecord:
    return MigrationRecord(
        id=row[0],
        filename=row[1],
        checksum=row[2],
        executed_at=coerce_datetime(row[3]),
        execution_time_ms=row[4],
        success=bool(row[5]),
    )


def _optional_record(row: tuple | None) -> MigrationRecord | None:
    return _row_to_record(row) if row is not None else None


__all__ = ["TRACKING_TABLE", "MigrationStore"]
