"""
Deployment orchestrator - the fixed five-step release pipeline.

Architecture:
    ::

        deploy(config)
          │  acquire deployment lock (optional)
          │  ledger.record_start()                          status = started
          ▼
        ┌───────────────────────────────────────────────────────────────┐
        │ 1. Pre-deployment Health Check  critical services healthy?    │──fail──┐
        │ 2. Database Migrations          runner.run_pending()          │──fail──┤ halt
        │ 3. Application Startup          marker (handled externally)   │        │
        │ 4. Post-deployment Health Check poll readiness, bounded       │──fail──┤
        │ 5. Deployment Verification      reported version == config    │ skipped if 4 failed
        └───────────────────────────────────────────────────────────────┘        │
          │                                                                       │
          │  rollback_on_failure and (4 failed or 1–2 failed or internal error) ◀─┘
          │      └─ RollbackCoordinator.rollback()              status = rolled_back
          │  otherwise ledger.mark_terminal()                   status = completed | failed
          ▼
        DeploymentResult   (never raises)

Rules:
    - The first failure among steps 1–2 halts the pipeline; later steps stay ``pending``.
    - ``success = health_check_passed and not rollback_performed``. A failed
      verification is reported on its step and in ``error`` but does not
      change ``success`` or the ledger status.
    - A migration step that outlives ``migration_timeout_ms`` fails at the
      deadline, but the call cannot be cancelled: rollback, the ledger write
      and the lock release wait until it returns.
    - The step tuple is rebuilt on every transition and returned by value.
    - The only suspension is the sleep between readiness attempts; ``sleep`` is injectable.

Example:
    >>> orchestrator = DeploymentOrchestrator(adapter, runner, provider)
    >>> result = orchestrator.deploy(DeploymentConfig(version="2.4.0"))
    >>> result.status
    <DeploymentStatus.COMPLETED: 'completed'>

Tags:
    deployment, release, pipeline, health-gate, rollback, mailspine
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from typing import Any

from mailspine.core.adapters import DatabaseAdapter
from mailspine.core.errors import (
    DeploymentInProgressError,
    HealthCheckTimeoutError,
    StepTimeoutError,
    VersionMismatchError,
)
from mailspine.core.logging import LogContext, get_logger
from mailspine.core.result import Err, Ok
from mailspine.core.timeout import TimeoutExpired, run_with_timeout
from mailspine.core.timestamps import elapsed_ms, utc_now
from mailspine.health import HealthStatusProvider
from mailspine.migrations import MigrationResult, MigrationRunner

from .config import DeploymentConfig
from .ledger import DeploymentLedger
from .lock import DeploymentLock
from .results import (
    APPLICATION_STARTUP,
    DATABASE_MIGRATIONS,
    DEPLOYMENT_VERIFICATION,
    POST_DEPLOYMENT_HEALTH_CHECK,
    PRE_DEPLOYMENT_HEALTH_CHECK,
    DeploymentResult,
    DeploymentStatus,
    DeploymentStep,
    StepStatus,
    initial_steps,
)
from .rollback import RollbackCoordinator

logger = get_logger(__name__)

DEFAULT_CRITICAL_SERVICES: tuple[str, ...] = ("database", "cache")


def failure_notes(notes: str | None, error: str) -> str:
    """Ledger notes for a failed release; operator notes are kept as a prefix."""
    failed = f"Deployment failed: {error}"
    return f"{notes}\n{failed}" if notes else failed


class _Pipeline:
    """Step bookkeeping for one ``deploy()`` call."""

    def __init__(self) -> None:
        self.steps: tuple[DeploymentStep, ...] = initial_steps()
        self.in_flight: list[tuple[str, Future]] = []

    def get(self, name: str) -> DeploymentStep:
        return next(s for s in self.steps if s.name == name)

    def put(self, step: DeploymentStep) -> DeploymentStep:
        self.steps = tuple(step if s.name == step.name else s for s in self.steps)
        return step

    def start(self, name: str) -> DeploymentStep:
        logger.info("deploy.step_started", step=name)
        return self.put(self.get(name).start())

    def complete(self, name: str, details: dict[str, Any] | None = None) -> bool:
        step = self.put(self.get(name).complete(details))
        logger.info("deploy.step_completed", step=name, duration_ms=step.duration_ms)
        return True

    def fail(self, name: str, error: str, details: dict[str, Any] | None = None) -> bool:
        step = self.put(self.get(name).fail(error, details))
        logger.error("deploy.step_failed", step=name, error=error, duration_ms=step.duration_ms)
        return False

    def first_error(self) -> str | None:
        return next((s.error for s in self.steps if s.status == StepStatus.FAILED), None)


class DeploymentOrchestrator:
    """Runs the release pipeline against one database and one health provider.

    Parameters
    ----------
    adapter
        Database adapter shared by the ledger and the lock.
    runner
        Migration runner for step 2 and for rollback.
    health
        Health status provider for steps 1, 4 and 5.
    critical_services
        Services whose ``unhealthy`` status fails the pre-deployment check.
    sleep
        Called with seconds between readiness attempts (``time.sleep``).
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        runner: MigrationRunner,
        health: HealthStatusProvider,
        *,
        ledger: DeploymentLedger | None = None,
        lock: DeploymentLock | None = None,
        rollback: RollbackCoordinator | None = None,
        critical_services: Iterable[str] = DEFAULT_CRITICAL_SERVICES,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._runner = runner
        self._health = health
        self._ledger = ledger or DeploymentLedger(adapter)
        self._lock = lock or DeploymentLock(adapter)
        self._rollback = rollback or RollbackCoordinator(self._ledger, runner)
        self._critical = tuple(critical_services)
        self._sleep = sleep

    @property
    def ledger(self) -> DeploymentLedger:
        return self._ledger

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def deploy(self, config: DeploymentConfig) -> DeploymentResult:
        """Run the full pipeline for ``config``. Never raises."""
        deployment_id = uuid.uuid4().hex
        start = utc_now()

        with LogContext(deployment_id=deployment_id, version=config.version):
            logger.info(
                "deploy.started",
                environment=config.environment,
                commit_hash=config.commit_hash,
                rollback_on_failure=config.rollback_on_failure,
            )

            if config.use_lock:
                try:
                    acquired = self._lock.acquire(deployment_id, config.lock_timeout_seconds)
                except Exception as exc:
                    logger.exception("deploy.lock_failed", error=str(exc))
                    return self._aborted(
                        deployment_id, config, start, f"Could not acquire deployment lock: {exc}"
                    )
                if not acquired:
                    error = DeploymentInProgressError(
                        "Another deployment is already in progress"
                    ).with_context(deployment_id=deployment_id, version=config.version)
                    logger.error("deploy.rejected", error=error.to_dict())
                    return self._aborted(deployment_id, config, start, error.message)

            try:
                return self._deploy(deployment_id, config, start)
            finally:
                if config.use_lock:
                    self._release_lock(deployment_id)

    def _release_lock(self, deployment_id: str) -> None:
        try:
            self._lock.release(deployment_id)
        except Exception as exc:
            logger.error("deploy.lock_release_failed", error=str(exc))

    def _aborted(
        self, deployment_id: str, config: DeploymentConfig, start, error: str
    ) -> DeploymentResult:
        end = utc_now()
        return DeploymentResult(
            success=False,
            deployment_id=deployment_id,
            version=config.version,
            start_time=start,
            end_time=end,
            duration_ms=elapsed_ms(start, end),
            steps=initial_steps(),
            status=DeploymentStatus.FAILED,
            error=error,
        )

    def _deploy(self, deployment_id: str, config: DeploymentConfig, start) -> DeploymentResult:
        match self._ledger.record_start(deployment_id, config):
            case Err() as err:
                logger.error("deploy.ledger_unavailable", error=err.message)
                return self._aborted(deployment_id, config, start, err.message)
            case Ok():
                pass

        pipeline = _Pipeline()
        health_check_passed = False
        rollback_wanted = False
        error: str | None = None

        try:
            if self._pre_check(pipeline, config) and self._migrate(pipeline, config):
                self._startup(pipeline)
                health_check_passed = self._post_check(pipeline, config)
                if health_check_passed:
                    self._verify(pipeline, config)
                else:
                    rollback_wanted = True
                    pipeline.put(
                        pipeline.get(DEPLOYMENT_VERIFICATION).skip(
                            {"reason": "Health check failed"}
                        )
                    )
            else:
                rollback_wanted = True
            error = pipeline.first_error()
        except Exception as exc:
            logger.exception("deploy.internal_error", error=str(exc))
            error = f"Internal error: {exc}"
            rollback_wanted = True

        self._await_in_flight(pipeline)

        notes = None if health_check_passed else failure_notes(config.notes, error or "unknown error")

        rollback_performed = False
        if rollback_wanted and config.rollback_on_failure:
            rollback_performed = self._rollback.rollback(
                deployment_id,
                health_check_passed=health_check_passed,
                notes=notes,
                steps=pipeline.steps,
            )
        success = health_check_passed and not rollback_performed

        if rollback_performed:
            status = DeploymentStatus.ROLLED_BACK
        elif success:
            status = DeploymentStatus.COMPLETED
        else:
            status = DeploymentStatus.FAILED

        if not rollback_performed:
            match self._ledger.mark_terminal(
                deployment_id,
                status,
                health_check_passed=health_check_passed,
                notes=notes,
                steps=pipeline.steps,
            ):
                case Err() as err:
                    logger.error("deploy.ledger_write_failed", error=err.message)
                    error = f"{error}; {err.message}" if error else err.message
                case Ok(False):
                    logger.warning("deploy.ledger_already_final")
                case Ok(True):
                    pass

        end = utc_now()
        result = DeploymentResult(
            success=success,
            deployment_id=deployment_id,
            version=config.version,
            start_time=start,
            end_time=end,
            duration_ms=elapsed_ms(start, end),
            steps=pipeline.steps,
            health_check_passed=health_check_passed,
            rollback_performed=rollback_performed,
            status=status,
            error=error,
        )
        log = logger.info if success else logger.error
        log(
            "deploy.finished",
            status=status.value,
            success=success,
            duration_ms=result.duration_ms,
            error=error,
        )
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _pre_check(self, pipeline: _Pipeline, config: DeploymentConfig) -> bool:
        name = PRE_DEPLOYMENT_HEALTH_CHECK
        pipeline.start(name)
        try:
            health = self._bounded(
                self._health.get_aggregate_health, config.pre_check_timeout_ms, name
            )
        except Exception as exc:
            return pipeline.fail(name, f"Health check error: {exc}")

        critical = {
            svc: health.services[svc].status if svc in health.services else "unknown"
            for svc in self._critical
        }
        details = {"overall_status": health.status, "critical_services": critical}
        unhealthy = [svc for svc, status in critical.items() if status == "unhealthy"]
        if unhealthy:
            return pipeline.fail(
                name, f"Critical services unhealthy: {', '.join(unhealthy)}", details
            )
        return pipeline.complete(name, details)

    def _migrate(self, pipeline: _Pipeline, config: DeploymentConfig) -> bool:
        name = DATABASE_MIGRATIONS
        pipeline.start(name)
        try:
            result: MigrationResult = self._bounded(
                self._runner.run_pending, config.migration_timeout_ms, name, pipeline
            )
        except Exception as exc:
            return pipeline.fail(name, f"Migrations failed: {exc}")

        details = {
            "migrations_run": len(result.migrations_run),
            "total_time_ms": result.total_time_ms,
            "migrations": list(result.migrations_run),
        }
        if not result.success:
            return pipeline.fail(
                name, f"Migrations failed: {', '.join(result.errors)}", details
            )
        return pipeline.complete(name, details)

    def _startup(self, pipeline: _Pipeline) -> bool:
        # Marker only; the process manager starts the application
        pipeline.start(APPLICATION_STARTUP)
        return pipeline.complete(
            APPLICATION_STARTUP, {"message": "Application startup handled externally"}
        )

    def _post_check(self, pipeline: _Pipeline, config: DeploymentConfig) -> bool:
        name = POST_DEPLOYMENT_HEALTH_CHECK
        pipeline.start(name)
        attempts = config.health_check_attempts
        interval_s = config.health_check_interval_ms / 1000

        for attempt in range(1, attempts + 1):
            try:
                readiness = self._health.get_readiness()
            except Exception as exc:
                if attempt == attempts:
                    return pipeline.fail(
                        name,
                        f"Health check error: {exc}",
                        {"attempts": attempt},
                    )
                logger.warning("deploy.readiness_error", attempt=attempt, error=str(exc))
            else:
                if readiness.ready:
                    return pipeline.complete(name, {"attempts": attempt})
                logger.info(
                    "deploy.not_ready",
                    attempt=attempt,
                    max_attempts=attempts,
                    issues=readiness.issues,
                )
            if attempt < attempts:
                self._sleep(interval_s)

        error = HealthCheckTimeoutError(attempts, config.health_check_timeout_ms)
        return pipeline.fail(name, error.message, {"attempts": attempts})

    def _verify(self, pipeline: _Pipeline, config: DeploymentConfig) -> bool:
        name = DEPLOYMENT_VERIFICATION
        pipeline.start(name)
        try:
            reported = self._health.get_aggregate_health().version
        except Exception as exc:
            return pipeline.fail(name, f"Verification error: {exc}")

        details = {"expected_version": config.version, "reported_version": reported}
        if reported != config.version:
            error = VersionMismatchError(config.version, reported)
            return pipeline.fail(name, error.message, details)
        return pipeline.complete(name, details)

    @staticmethod
    def _bounded(
        func: Callable[[], Any],
        timeout_ms: int | None,
        step: str,
        pipeline: _Pipeline | None = None,
    ) -> Any:
        """Run ``func`` under ``timeout_ms``.

        With ``pipeline`` given, an expired call is kept in
        ``pipeline.in_flight`` so cleanup can wait for it.
        """
        if timeout_ms is None:
            return func()
        try:
            return run_with_timeout(func, timeout_ms / 1000, operation=step)
        except TimeoutExpired as exc:
            if pipeline is not None and exc.future is not None:
                pipeline.in_flight.append((step, exc.future))
            raise StepTimeoutError(step, timeout_ms) from None

    @staticmethod
    def _await_in_flight(pipeline: _Pipeline) -> None:
        while pipeline.in_flight:
            step, future = pipeline.in_flight.pop()
            logger.warning("deploy.awaiting_timed_out_step", step=step)
            try:
                outcome = future.result()
            except Exception as exc:
                logger.error("deploy.timed_out_step_raised", step=step, error=str(exc))
            else:
                logger.warning("deploy.timed_out_step_returned", step=step, outcome=repr(outcome))


__all__ = ["DEFAULT_CRITICAL_SERVICES", "DeploymentOrchestrator", "failure_notes"]
