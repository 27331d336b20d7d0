"""Rollback coordinator.

When a release fails its health gate (or crashes before migrating) and
``rollback_on_failure`` is set, the coordinator:

1. finds the last release that completed with a passing health gate,
2. asks the migration runner to reverse the newest migration, and
3. closes the current ledger record as ``rolled_back`` with
   ``rollback_version`` set to that earlier release.

A failed schema reversal in step 2 is logged at error level and the
record is still closed as ``rolled_back``. Operators need to know this
release is not the live one; the schema fix-up is manual follow-up that
the error log names.
"""

from __future__ import annotations

from collections.abc import Iterable

from mailspine.core.logging import get_logger
from mailspine.core.result import Err, Ok
from mailspine.migrations import MigrationRunner

from .ledger import DeploymentLedger
from .results import DeploymentStatus, DeploymentStep

logger = get_logger(__name__)


class RollbackCoordinator:
    """Reverts a failed deployment to the last healthy one."""

    def __init__(self, ledger: DeploymentLedger, runner: MigrationRunner):
        self._ledger = ledger
        self._runner = runner

    def rollback(
        self,
        deployment_id: str,
        *,
        health_check_passed: bool,
        notes: str | None = None,
        steps: Iterable[DeploymentStep] = (),
    ) -> bool:
        """Roll back ``deployment_id``. Returns whether rollback was performed."""
        logger.warning("rollback.started", deployment_id=deployment_id)

        match self._ledger.find_rollback_target(deployment_id):
            case Err() as err:
                logger.error("rollback.failed", deployment_id=deployment_id, error=err.message)
                return False
            case Ok(None):
                logger.warning(
                    "rollback.no_target",
                    deployment_id=deployment_id,
                    reason="No previous healthy deployment found",
                )
                return False
            case Ok(target):
                pass

        outcome = self._runner.rollback_last()
        if outcome.success:
            logger.info(
                "rollback.migration_reverted",
                deployment_id=deployment_id,
                migration=outcome.rolled_back,
            )
        else:
            logger.error(
                "rollback.migration_failed",
                deployment_id=deployment_id,
                error=outcome.error,
            )

        match self._ledger.mark_terminal(
            deployment_id,
            DeploymentStatus.ROLLED_BACK,
            health_check_passed=health_check_passed,
            rollback_version=target.version,
            notes=notes,
            steps=steps,
        ):
            case Err() as err:
                logger.error("rollback.failed", deployment_id=deployment_id, error=err.message)
                return False
            case Ok(False):
                logger.error(
                    "rollback.failed",
                    deployment_id=deployment_id,
                    error="Deployment record is not in started state",
                )
                return False
            case Ok(True):
                pass

        logger.info(
            "rollback.completed",
            deployment_id=deployment_id,
            rolled_back_to=target.version,
        )
        return True


__all__ = ["RollbackCoordinator"]
