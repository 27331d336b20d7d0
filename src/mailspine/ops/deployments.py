"""
Deployment operations.

Run a release, read the ledger, and report what is live now.
"""

from __future__ import annotations

from mailspine.core.logging import get_logger
from mailspine.core.result import Err, Ok
from mailspine.deploy import (
    CurrentDeployment,
    DeploymentConfig,
    DeploymentLedger,
    DeploymentOrchestrator,
    DeploymentRecord,
    DeploymentResult,
)
from mailspine.migrations import MigrationRunner
from mailspine.ops.context import OperationContext
from mailspine.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def _ledger(ctx: OperationContext) -> DeploymentLedger:
    """Create a DeploymentLedger from OperationContext."""
    return DeploymentLedger(ctx.adapter)


def deploy(ctx: OperationContext, config: DeploymentConfig) -> OperationResult[DeploymentResult]:
    """Run the release pipeline.

    A release that failed (or was rolled back) is still returned with
    ``OperationResult.success = True``; read ``data.success`` / ``data.status``.
    """
    timer = start_timer()

    if ctx.health is None:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "A health status provider is required to deploy",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        orchestrator = DeploymentOrchestrator(
            ctx.adapter,
            MigrationRunner(ctx.adapter, ctx.migrations_dir),
            ctx.health,
            critical_services=ctx.critical_services,
        )
        result = orchestrator.deploy(config)
        if result.error:
            warnings = [result.error]
        else:
            warnings = [] if result.success else ["deployment failed"]
        return OperationResult.ok(
            result,
            warnings=warnings,
            elapsed_ms=timer.elapsed_ms,
            metadata={"request_id": ctx.request_id, "caller": ctx.caller},
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to run deployment: {exc}",
            elapsed_ms=timer.elapsed_ms,
        )


def initialize_ledger(ctx: OperationContext) -> OperationResult[None]:
    """Create the ``deployment_logs`` table if absent (schema setup)."""
    timer = start_timer()

    if ctx.dry_run:
        return OperationResult.ok(
            None, warnings=["would create deployment_logs"], elapsed_ms=timer.elapsed_ms
        )

    try:
        match _ledger(ctx).initialize():
            case Err(error):
                return OperationResult.from_error("UNAVAILABLE", error, elapsed_ms=timer.elapsed_ms)
            case Ok():
                return OperationResult.ok(None, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to initialize deployment ledger: {exc}",
            elapsed_ms=timer.elapsed_ms,
        )


def get_deployment_history(
    ctx: OperationContext, limit: int = 10
) -> OperationResult[list[DeploymentRecord]]:
    """Most recent deployments first."""
    timer = start_timer()

    if limit < 1:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "limit must be at least 1",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        match _ledger(ctx).history(limit):
            case Err(error):
                return OperationResult.from_error("UNAVAILABLE", error, elapsed_ms=timer.elapsed_ms)
            case Ok(records):
                return OperationResult.ok(records, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to read deployment history: {exc}",
            elapsed_ms=timer.elapsed_ms,
        )


def get_current_deployment_status(
    ctx: OperationContext,
) -> OperationResult[CurrentDeployment | None]:
    """The newest started/completed deployment plus live health, uptime and version.

    Returns ``ok(None)`` when no deployment has been recorded. Health is
    best effort: if the provider fails the record is still returned, with a
    warning.
    """
    timer = start_timer()
    try:
        match _ledger(ctx).current():
            case Err(error):
                return OperationResult.from_error("UNAVAILABLE", error, elapsed_ms=timer.elapsed_ms)
            case Ok(None):
                return OperationResult.ok(None, elapsed_ms=timer.elapsed_ms)
            case Ok(record):
                pass

        current = CurrentDeployment(record=record)
        warnings: list[str] = []
        if ctx.health is not None:
            try:
                health = ctx.health.get_aggregate_health()
                current = CurrentDeployment(
                    record=record,
                    current_health=health,
                    uptime_s=health.uptime_s,
                    running_version=health.version,
                )
            except Exception as exc:
                logger.warning("health_unavailable", error=str(exc))
                warnings.append(f"Health unavailable: {exc}")

        return OperationResult.ok(current, warnings=warnings, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to read current deployment: {exc}",
            elapsed_ms=timer.elapsed_ms,
        )


__all__ = [
    "deploy",
    "get_current_deployment_status",
    "get_deployment_history",
    "initialize_ledger",
]
