"""SQL migration runner.

Applies pending migrations from the store in filename order, one
transaction per migration. A migration's statements and its tracking
record commit together; if any statement fails the transaction rolls back,
a ``success = false`` record is written separately for the audit trail,
and the batch stops. The next run retries the failed file, and a
successful retry replaces the failed record.

``rollback_last()`` reverses the newest successful migration with its
paired ``<name>.rollback.sql`` script, deleting the tracking record in the
same transaction.

Migration bodies must not manage transactions themselves (no ``BEGIN`` /
``COMMIT``); the runner owns the boundary.
"""

from __future__ import annotations

import time
from pathlib import Path

from mailspine.core.adapters import DatabaseAdapter
from mailspine.core.errors import (
    MigrationExecutionError,
    RollbackExecutionError,
    RollbackScriptMissingError,
    TrackingUnavailableError,
)
from mailspine.core.logging import get_logger
from mailspine.core.result import Err, Ok, Result, try_result_with
from mailspine.core.timestamps import to_iso8601, utc_now

from .models import (
    ChecksumEntry,
    ChecksumReport,
    ChecksumState,
    LastMigration,
    MigrationDefinition,
    MigrationResult,
    MigrationStatus,
    RollbackOutcome,
    rollback_filename_for,
)
from .statements import split_statements
from .store import TRACKING_TABLE, MigrationStore

logger = get_logger(__name__)

NO_MIGRATIONS_TO_ROLLBACK = "No migrations to rollback"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class MigrationRunner:
    """Applies and reverses SQL migrations against one database.

    Parameters
    ----------
    adapter
        Database adapter; each migration runs in ``adapter.transaction()``.
    migrations_dir
        Directory containing ``NNN_name.sql`` definitions.
    store
        Optional pre-built store (defaults to one over the same adapter/dir).

    Example::

        from mailspine.core.adapters import get_adapter
        from mailspine.migrations import MigrationRunner

        runner = MigrationRunner(get_adapter("sqlite:///mailspine.db"), "migrations")
        result = runner.run_pending()
        print(f"Applied {len(result.migrations_run)} migrations")
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        migrations_dir: Path | str,
        *,
        store: MigrationStore | None = None,
    ) -> None:
        self._adapter = adapter
        self._store = store or MigrationStore(adapter, migrations_dir)

    @property
    def store(self) -> MigrationStore:
        return self._store

    # ------------------------------------------------------------------
    # Tracking table
    # ------------------------------------------------------------------

    def tracking_ddl(self) -> list[str]:
        d = self._adapter.dialect
        return [
            f"""CREATE TABLE IF NOT EXISTS {TRACKING_TABLE} (
                id {d.auto_increment()},
                filename VARCHAR(255) NOT NULL UNIQUE,
                checksum VARCHAR(64) NOT NULL,
                executed_at {d.timestamp_type()} NOT NULL,
                execution_time_ms INTEGER NOT NULL DEFAULT 0,
                success {d.boolean_type()} NOT NULL
            )""",
            f"CREATE INDEX IF NOT EXISTS idx_{TRACKING_TABLE}_filename "
            f"ON {TRACKING_TABLE} (filename)",
            f"CREATE INDEX IF NOT EXISTS idx_{TRACKING_TABLE}_executed_at "
            f"ON {TRACKING_TABLE} (executed_at)",
        ]

    def initialize_tracking(self) -> Result[None]:
        """Create ``schema_migrations`` and its indexes if absent. Idempotent."""

        def _create() -> None:
            with self._adapter.transaction() as conn:
                for statement in self.tracking_ddl():
                    conn.execute(statement)

        return try_result_with(
            _create,
            lambda e: TrackingUnavailableError(
                f"Cannot initialize {TRACKING_TABLE}: {e}", cause=e
            ),
        )

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def run_pending(self) -> MigrationResult:
        """Apply every pending migration in order, stopping at the first failure."""
        started = time.perf_counter()

        match self.initialize_tracking().and_then(lambda _: self._store.get_pending()):
            case Err() as err:
                logger.error("migrations.unavailable", error=err.message)
                return MigrationResult(
                    success=False, errors=[err.message], total_time_ms=_elapsed_ms(started)
                )
            case Ok(pending):
                pass

        if not pending:
            logger.info("migrations.up_to_date")
            return MigrationResult(success=True, total_time_ms=_elapsed_ms(started))

        logger.info("migrations.pending", count=len(pending))
        migrations_run: list[str] = []
        errors: list[str] = []

        for definition in pending:
            match self._apply(definition):
                case Ok():
                    migrations_run.append(definition.filename)
                case Err() as err:
                    errors.append(f"{definition.filename}: {err.message}")
                    break  # Stop on first error

        result = MigrationResult(
            success=not errors,
            migrations_run=migrations_run,
            errors=errors,
            total_time_ms=_elapsed_ms(started),
        )
        logger.info(
            "migrations.completed",
            success=result.success,
            applied=len(migrations_run),
            total_time_ms=result.total_time_ms,
        )
        return result

    def _apply(self, definition: MigrationDefinition) -> Result[int]:
        d = self._adapter.dialect
        executed_at = to_iso8601(utc_now())
        started = time.perf_counter()
        logger.info("migration.started", migration=definition.filename)

        try:
            with self._adapter.transaction() as conn:
                for statement in split_statements(definition.body):
                    conn.execute(statement)
                elapsed = _elapsed_ms(started)
                conn.execute(
                    f"DELETE FROM {TRACKING_TABLE} "
                    f"WHERE filename = {d.placeholder(0)} AND success = {d.placeholder(1)}",
                    (definition.filename, False),
                )
                conn.execute(
                    f"INSERT INTO {TRACKING_TABLE} "
                    "(filename, checksum, executed_at, execution_time_ms, success) "
                    f"VALUES ({d.placeholders(5)})",
                    (definition.filename, definition.checksum, executed_at, elapsed, True),
                )
        except Exception as exc:
            elapsed = _elapsed_ms(started)
            logger.error(
                "migration.failed",
                migration=definition.filename,
                error=str(exc),
                execution_time_ms=elapsed,
            )
            self._record_failure(definition, executed_at, elapsed)
            return Err(
                MigrationExecutionError(str(exc), filename=definition.filename, cause=exc)
            )

        logger.info(
            "migration.applied",
            migration=definition.filename,
            checksum=definition.checksum[:12],
            execution_time_ms=elapsed,
        )
        return Ok(elapsed)

    def _record_failure(
        self, definition: MigrationDefinition, executed_at: str | None, elapsed: int
    ) -> None:
        d = self._adapter.dialect
        try:
            with self._adapter.transaction() as conn:
                conn.execute(
                    f"DELETE FROM {TRACKING_TABLE} "
                    f"WHERE filename = {d.placeholder(0)} AND success = {d.placeholder(1)}",
                    (definition.filename, False),
                )
                conn.execute(
                    f"INSERT INTO {TRACKING_TABLE} "
                    "(filename, checksum, executed_at, execution_time_ms, success) "
                    f"VALUES ({d.placeholders(5)})",
                    (definition.filename, definition.checksum, executed_at, elapsed, False),
                )
        except Exception as exc:
            logger.error(
                "migration.failure_record_failed",
                migration=definition.filename,
                error=str(exc),
            )

    # ------------------------------------------------------------------
    # Status / verification
    # ------------------------------------------------------------------

    def status(self) -> Result[MigrationStatus]:
        """Counts of defined and applied migrations plus the pending list."""
        match self.initialize_tracking().and_then(lambda _: self._store.list_definitions()):
            case Err() as err:
                return err
            case Ok(definitions):
                pass

        match self._store.get_applied():
            case Err() as err:
                return err
            case Ok(applied):
                pass

        return self._store.get_last_applied().map(
            lambda last: MigrationStatus(
                total=len(definitions),
                executed=len(applied),
                pending=[d.filename for d in definitions if d.filename not in applied],
                last_migration=(
                    LastMigration(filename=last.filename, executed_at=last.executed_at)
                    if last is not None
                    else None
                ),
            )
        )

    def verify_checksums(self) -> Result[ChecksumReport]:
        """Compare each applied migration's recorded checksum with its file today."""
        match self.initialize_tracking().and_then(lambda _: self._store.list_definitions()):
            case Err() as err:
                return err
            case Ok(definitions):
                current = {d.filename: d.checksum for d in definitions}

        match self._store.get_records():
            case Err() as err:
                return err
            case Ok(records):
                pass

        entries = []
        for record in records:
            if not record.success:
                continue
            now = current.get(record.filename)
            if now is None:
                state = ChecksumState.MISSING
            elif now != record.checksum:
                state = ChecksumState.MISMATCH
            else:
                state = ChecksumState.OK
            entries.append(
                ChecksumEntry(
                    filename=record.filename,
                    state=state,
                    recorded=record.checksum,
                    current=now,
                )
            )

        report = ChecksumReport(entries=entries)
        if not report.clean:
            logger.warning(
                "migrations.checksum_drift",
                drifted=[e.filename for e in report.drifted],
            )
        return Ok(report)

    # ------------------------------------------------------------------
    # Rollback
    # ------------------------------------------------------------------

    def rollback_last(self) -> RollbackOutcome:
        """Reverse the newest successful migration using its rollback script."""
        match self.initialize_tracking().and_then(lambda _: self._store.get_last_applied()):
            case Err() as err:
                return RollbackOutcome(success=False, error=err.message)
            case Ok(None):
                logger.warning("migration.rollback_skipped", reason=NO_MIGRATIONS_TO_ROLLBACK)
                return RollbackOutcome(success=False, error=NO_MIGRATIONS_TO_ROLLBACK)
            case Ok(record):
                pass

        match self._store.get_definition(record.filename):
            case Err() as err:
                logger.error("migration.rollback_failed", migration=record.filename, error=err.message)
                return RollbackOutcome(success=False, error=err.message)
            case Ok(definition):
                pass

        if definition is None or definition.rollback_body is None:
            error = RollbackScriptMissingError(record.filename, rollback_filename_for(record.filename))
            logger.error("migration.rollback_failed", migration=record.filename, error=error.message)
            return RollbackOutcome(success=False, error=error.message)

        d = self._adapter.dialect
        try:
            with self._adapter.transaction() as conn:
                for statement in split_statements(definition.rollback_body):
                    conn.execute(statement)
                conn.execute(
                    f"DELETE FROM {TRACKING_TABLE} WHERE id = {d.placeholder(0)}",
                    (record.id,),
                )
        except Exception as exc:
            error = RollbackExecutionError(
                f"Rollback of {record.filename} failed: {exc}",
                filename=record.filename,
                cause=exc,
            )
            logger.error("migration.rollback_failed", migration=record.filename, error=str(exc))
            return RollbackOutcome(success=False, error=error.message)

        logger.info("migration.rolled_back", migration=record.filename)
        return RollbackOutcome(success=True, rolled_back=record.filename)


__all__ = ["NO_MIGRATIONS_TO_ROLLBACK", "MigrationRunner"]
