"""
Migration operations.

Thin wrappers over :class:`~mailspine.migrations.MigrationRunner` that
return :class:`OperationResult` envelopes for the CLI and SDK callers.
"""

from __future__ import annotations

from mailspine.core.logging import get_logger
from mailspine.core.result import Err, Ok
from mailspine.migrations import (
    NO_MIGRATIONS_TO_ROLLBACK,
    TRACKING_TABLE,
    ChecksumReport,
    MigrationResult,
    MigrationRunner,
    MigrationStatus,
    RollbackOutcome,
)
from mailspine.ops.context import OperationContext
from mailspine.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def _runner(ctx: OperationContext) -> MigrationRunner:
    """Create a MigrationRunner from OperationContext."""
    return MigrationRunner(ctx.adapter, ctx.migrations_dir)


def run_migrations(ctx: OperationContext) -> OperationResult[MigrationResult]:
    """Apply every pending migration.

    The payload's ``success`` is ``False`` when a migration failed; the
    operation itself only fails on an internal error. With ``ctx.dry_run``
    nothing is applied and the pending filenames are returned as warnings.
    """
    timer = start_timer()
    try:
        runner = _runner(ctx)
        if ctx.dry_run:
            tracked = ctx.adapter.table_exists(TRACKING_TABLE)
            store = runner.store
            match store.get_pending() if tracked else store.list_definitions():
                case Err(error):
                    return OperationResult.from_error("UNAVAILABLE", error, elapsed_ms=timer.elapsed_ms)
                case Ok(pending):
                    return OperationResult.ok(
                        MigrationResult(success=True),
                        warnings=[f"would apply {d.filename}" for d in pending],
                        elapsed_ms=timer.elapsed_ms,
                    )

        result = runner.run_pending()
        return OperationResult.ok(
            result,
            elapsed_ms=timer.elapsed_ms,
            metadata={"request_id": ctx.request_id},
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to run migrations: {exc}",
            elapsed_ms=timer.elapsed_ms,
        )


def get_migration_status(ctx: OperationContext) -> OperationResult[MigrationStatus]:
    """Defined, applied and pending migrations."""
    timer = start_timer()
    try:
        match _runner(ctx).status():
            case Err(error):
                return OperationResult.from_error("UNAVAILABLE", error, elapsed_ms=timer.elapsed_ms)
            case Ok(status):
                return OperationResult.ok(status, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to read migration status: {exc}",
            elapsed_ms=timer.elapsed_ms,
        )


def rollback_last_migration(ctx: OperationContext) -> OperationResult[RollbackOutcome]:
    """Reverse the newest successful migration with its rollback script."""
    timer = start_timer()
    try:
        runner = _runner(ctx)
        if ctx.dry_run:
            if not ctx.adapter.table_exists(TRACKING_TABLE):
                return OperationResult.ok(
                    RollbackOutcome(success=False, error=NO_MIGRATIONS_TO_ROLLBACK),
                    elapsed_ms=timer.elapsed_ms,
                )
            match runner.store.get_last_applied():
                case Err(error):
                    return OperationResult.from_error("UNAVAILABLE", error, elapsed_ms=timer.elapsed_ms)
                case Ok(None):
                    return OperationResult.ok(
                        RollbackOutcome(success=False, error=NO_MIGRATIONS_TO_ROLLBACK),
                        elapsed_ms=timer.elapsed_ms,
                    )
                case Ok(record):
                    return OperationResult.ok(
                        RollbackOutcome(success=True, rolled_back=record.filename),
                        warnings=[f"would roll back {record.filename}"],
                        elapsed_ms=timer.elapsed_ms,
                    )

        outcome = runner.rollback_last()
        return OperationResult.ok(outcome, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to roll back migration: {exc}",
            elapsed_ms=timer.elapsed_ms,
        )


def verify_migrations(ctx: OperationContext) -> OperationResult[ChecksumReport]:
    """Compare recorded checksums with the definitions on disk."""
    timer = start_timer()
    try:
        match _runner(ctx).verify_checksums():
            case Err(error):
                return OperationResult.from_error("UNAVAILABLE", error, elapsed_ms=timer.elapsed_ms)
            case Ok(report):
                warnings = [f"{e.filename}: {e.state.value}" for e in report.drifted]
                return OperationResult.ok(report, warnings=warnings, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to verify migrations: {exc}",
            elapsed_ms=timer.elapsed_ms,
        )


__all__ = [
    "get_migration_status",
    "rollback_last_migration",
    "run_migrations",
    "verify_migrations",
]
