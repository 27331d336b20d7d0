"""Health response models shared by every health status provider."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

HealthState = Literal["healthy", "degraded", "unhealthy"]


class ServiceHealth(BaseModel):
    """Result of a single dependency health check."""

    status: HealthState
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class AggregateHealth(BaseModel):
    """Whole-platform health snapshot.

    Fields
    ──────
    status      : ``healthy`` | ``degraded`` | ``unhealthy``
    services    : Per-dependency breakdown (name → ServiceHealth)
    version     : Version the running application reports
    environment : Environment the application believes it runs in
    uptime_s    : Seconds since the provider started
    """

    status: HealthState = "healthy"
    services: dict[str, ServiceHealth] = Field(default_factory=dict)
    version: str | None = None
    environment: str | None = None
    uptime_s: float = 0.0


class Readiness(BaseModel):
    """Whether the application may receive traffic, and why not if it may not."""

    ready: bool
    services: dict[str, ServiceHealth] = Field(default_factory=dict)
    issues: list[str] = Field(default_factory=list)


__all__ = ["AggregateHealth", "HealthState", "Readiness", "ServiceHealth"]
