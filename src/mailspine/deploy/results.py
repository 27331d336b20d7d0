"""Result models for the release pipeline.

Pydantic v2 models for what a deployment produces (``DeploymentStep``,
``DeploymentResult``) and what the ledger stores (``DeploymentRecord``).

Key Concepts:
    DeploymentStep: Immutable. A step changes state by being *replaced*
        (``step.start()``, ``step.complete(...)``, ``step.fail(...)``,
        ``step.skip(...)``), never mutated, so a finished result can be
        handed out without anyone else being able to alter it.
    DeploymentStatus: ``started`` → exactly one of ``completed`` /
        ``failed`` / ``rolled_back``.
    DeploymentResult: Returned by ``deploy()`` whatever happened; the
        ``steps`` tuple, timing and ``error`` are always populated.

Tags:
    results, models, pydantic, deployment, status, mailspine
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mailspine.core.timestamps import elapsed_ms, utc_now
from mailspine.health.models import AggregateHealth

# ---------------------------------------------------------------------------
# Pipeline step names
# ---------------------------------------------------------------------------

PRE_DEPLOYMENT_HEALTH_CHECK = "Pre-deployment Health Check"
DATABASE_MIGRATIONS = "Database Migrations"
APPLICATION_STARTUP = "Application Startup"
POST_DEPLOYMENT_HEALTH_CHECK = "Post-deployment Health Check"
DEPLOYMENT_VERIFICATION = "Deployment Verification"

PIPELINE_STEPS: tuple[str, ...] = (
    PRE_DEPLOYMENT_HEALTH_CHECK,
    DATABASE_MIGRATIONS,
    APPLICATION_STARTUP,
    POST_DEPLOYMENT_HEALTH_CHECK,
    DEPLOYMENT_VERIFICATION,
)


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class DeploymentStatus(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self is not DeploymentStatus.STARTED


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


class DeploymentStep(BaseModel):
    """One named stage of the pipeline."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: StepStatus = StepStatus.PENDING
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_ms: int | None = None
    error: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    def start(self) -> DeploymentStep:
        return self.model_copy(update={"status": StepStatus.RUNNING, "start_time": utc_now()})

    def _finish(self, status: StepStatus, **update: Any) -> DeploymentStep:
        end = utc_now()
        start = self.start_time or end
        return self.model_copy(
            update={
                "status": status,
                "start_time": start,
                "end_time": end,
                "duration_ms": elapsed_ms(start, end),
                **update,
            }
        )

    def complete(self, details: dict[str, Any] | None = None) -> DeploymentStep:
        return self._finish(StepStatus.COMPLETED, details=details or {})

    def fail(self, error: str, details: dict[str, Any] | None = None) -> DeploymentStep:
        return self._finish(StepStatus.FAILED, error=error, details=details or self.details)

    def skip(self, details: dict[str, Any] | None = None) -> DeploymentStep:
        return self._finish(StepStatus.SKIPPED, details=details or {})


def initial_steps() -> tuple[DeploymentStep, ...]:
    """A fresh, all-pending step tuple for one run."""
    return tuple(DeploymentStep(name=name) for name in PIPELINE_STEPS)


# ---------------------------------------------------------------------------
# Ledger record
# ---------------------------------------------------------------------------


class DeploymentRecord(BaseModel):
    """A row of ``deployment_logs``."""

    model_config = ConfigDict(frozen=True)

    id: str
    version: str
    environment: str
    status: DeploymentStatus
    commit_hash: str | None = None
    build_time: str | None = None
    deployed_by: str | None = None
    notes: str | None = None
    health_check_passed: bool = False
    rollback_version: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
    steps: list[DeploymentStep] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class DeploymentResult(BaseModel):
    """Everything a caller learns from one ``deploy()`` call."""

    model_config = ConfigDict(frozen=True)

    success: bool
    deployment_id: str
    version: str
    start_time: datetime
    end_time: datetime
    duration_ms: int
    steps: tuple[DeploymentStep, ...]
    health_check_passed: bool = False
    rollback_performed: bool = False
    status: DeploymentStatus = DeploymentStatus.FAILED
    error: str | None = None

    def step(self, name: str) -> DeploymentStep:
        """Look up a step by its pipeline name."""
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)


class CurrentDeployment(BaseModel):
    """The active deployment plus what the platform reports right now."""

    record: DeploymentRecord
    current_health: AggregateHealth | None = None
    uptime_s: float | None = None
    running_version: str | None = None


__all__ = [
    "APPLICATION_STARTUP",
    "DATABASE_MIGRATIONS",
    "DEPLOYMENT_VERIFICATION",
    "PIPELINE_STEPS",
    "POST_DEPLOYMENT_HEALTH_CHECK",
    "PRE_DEPLOYMENT_HEALTH_CHECK",
    "CurrentDeployment",
    "DeploymentRecord",
    "DeploymentResult",
    "DeploymentStatus",
    "DeploymentStep",
    "StepStatus",
    "initial_steps",
]
