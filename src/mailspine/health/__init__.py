"""Health status: the protocol the release pipeline consumes, plus a check-based provider."""

from .checks import database_check, redis_check
from .models import AggregateHealth, HealthState, Readiness, ServiceHealth
from .provider import CheckedHealthProvider, HealthCheck, HealthStatusProvider, compute_status

__all__ = [
    "AggregateHealth",
    "CheckedHealthProvider",
    "HealthCheck",
    "HealthState",
    "HealthStatusProvider",
    "Readiness",
    "ServiceHealth",
    "compute_status",
    "database_check",
    "redis_check",
]
