"""Health status providers.

The release pipeline never checks infrastructure itself. It asks a
``HealthStatusProvider`` two read-only questions: *how is everything?*
(``get_aggregate_health``) and *may we take traffic?* (``get_readiness``).
Production wires in whatever the platform already runs; this module ships
``CheckedHealthProvider``, which answers both from a list of declarative
``HealthCheck`` callables.

Quick start::

    from mailspine.health import CheckedHealthProvider, HealthCheck, database_check, redis_check

    provider = CheckedHealthProvider(
        [
            HealthCheck("database", database_check(adapter)),
            HealthCheck("cache", redis_check("redis://cache:6379/0"), required=False),
        ],
        critical=("database", "cache"),
        required_env=("MAILSPINE_DATABASE_URL", "SMTP_HOST"),
        version="2.4.0",
        environment="production",
    )
    provider.get_readiness().ready
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from mailspine.core.logging import get_logger

from .models import AggregateHealth, HealthState, Readiness, ServiceHealth

logger = get_logger(__name__)


@runtime_checkable
class HealthStatusProvider(Protocol):
    """Read-only, idempotent view of platform health."""

    def get_aggregate_health(self) -> AggregateHealth: ...

    def get_readiness(self) -> Readiness: ...


@dataclass
class HealthCheck:
    """Declarative description of a single dependency health check.

    Parameters
    ----------
    name : str
        Service name as the release gate knows it (``"database"``, ``"cache"``).
    check_fn : () -> bool
        Returns ``True`` when healthy; returning ``False`` or raising marks it unhealthy.
    required : bool
        If *True* (default), failure makes the overall status ``unhealthy``.
        If *False*, failure only causes ``degraded``.
    """

    name: str
    check_fn: Callable[[], bool]
    required: bool = True


def _run_check(hc: HealthCheck) -> ServiceHealth:
    start = time.monotonic()
    try:
        ok = hc.check_fn()
    except Exception as exc:  # noqa: BLE001
        elapsed = (time.monotonic() - start) * 1000
        return ServiceHealth(status="unhealthy", latency_ms=round(elapsed, 2), error=str(exc)[:200])
    elapsed = (time.monotonic() - start) * 1000
    if not ok:
        return ServiceHealth(status="unhealthy", latency_ms=round(elapsed, 2), error="check returned false")
    return ServiceHealth(status="healthy", latency_ms=round(elapsed, 2))


def compute_status(
    results: Mapping[str, ServiceHealth],
    checks: Iterable[HealthCheck],
) -> HealthState:
    """Derive aggregate status from individual check results."""
    check_map = {hc.name: hc for hc in checks}
    any_required_down = False
    any_optional_down = False

    for name, result in results.items():
        if result.status != "healthy":
            hc = check_map.get(name)
            if hc and hc.required:
                any_required_down = True
            else:
                any_optional_down = True

    if any_required_down:
        return "unhealthy"
    if any_optional_down:
        return "degraded"
    return "healthy"


class CheckedHealthProvider:
    """Health provider backed by synchronous ``HealthCheck`` callables.

    Readiness requires every *critical* service to be healthy (a critical
    service with no registered check counts as unhealthy) and every
    ``required_env`` variable to be set and non-empty.
    """

    def __init__(
        self,
        checks: Iterable[HealthCheck],
        *,
        critical: Iterable[str] = ("database", "cache"),
        required_env: Iterable[str] = (),
        version: str | None = None,
        environment: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._checks = list(checks)
        self._critical = tuple(critical)
        self._required_env = tuple(required_env)
        self._version = version
        self._environment = environment
        self._environ = environ
        self._started = time.monotonic()

    def _results(self) -> dict[str, ServiceHealth]:
        return {hc.name: _run_check(hc) for hc in self._checks}

    def get_aggregate_health(self) -> AggregateHealth:
        results = self._results()
        status = compute_status(results, self._checks)
        if status != "healthy":
            logger.warning(
                "health.degraded",
                status=status,
                failing=[n for n, r in results.items() if r.status != "healthy"],
            )
        return AggregateHealth(
            status=status,
            services=results,
            version=self._version,
            environment=self._environment,
            uptime_s=round(time.monotonic() - self._started, 1),
        )

    def get_readiness(self) -> Readiness:
        results = self._results()
        environ = self._environ if self._environ is not None else os.environ
        issues = []

        for name in self._critical:
            result = results.get(name)
            if result is None:
                issues.append(f"Critical service {name} has no health check")
            elif result.status != "healthy":
                detail = f": {result.error}" if result.error else ""
                issues.append(f"Critical service {name} is {result.status}{detail}")

        missing = [var for var in self._required_env if not environ.get(var)]
        if missing:
            issues.append(f"Missing required environment variables: {', '.join(missing)}")

        return Readiness(ready=not issues, services=results, issues=issues)


__all__ = [
    "CheckedHealthProvider",
    "HealthCheck",
    "HealthStatusProvider",
    "compute_status",
]
