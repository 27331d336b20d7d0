"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its
first argument. The context carries the database adapter, the migrations
directory, the health provider, settings, and caller identity. Nothing in
:mod:`mailspine.ops` reaches for a global connection.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mailspine.core.adapters import DatabaseAdapter, get_adapter
from mailspine.core.settings import MailspineSettings
from mailspine.health import (
    CheckedHealthProvider,
    HealthCheck,
    HealthStatusProvider,
    database_check,
    redis_check,
)


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        adapter: Database adapter for tracking, ledger and lock tables.
        migrations_dir: Directory with ``NNN_name.sql`` definitions.
        health: Health status provider (required by the deploy operations).
        settings: Process settings the context was built from.
        request_id: Unique ID for this operation invocation (auto-generated).
        caller: Origin of the request: ``"cli"``, ``"sdk"`` or ``"ci"``.
        user: Optional operator identifier.
        dry_run: When ``True``, operations report what they would do without side effects.
        metadata: Arbitrary key/value pairs forwarded to logging.
    """

    adapter: DatabaseAdapter
    migrations_dir: Path
    health: HealthStatusProvider | None = None
    settings: MailspineSettings | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    user: str | None = None
    dry_run: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def critical_services(self) -> tuple[str, ...]:
        if self.settings is None:
            return ("database", "cache")
        return self.settings.critical_service_names

    @classmethod
    def from_settings(
        cls,
        settings: MailspineSettings,
        *,
        caller: str = "sdk",
        **kwargs: Any,
    ) -> OperationContext:
        """Build adapter and health provider from settings."""
        adapter = get_adapter(settings.database_url)
        return cls(
            adapter=adapter,
            migrations_dir=Path(settings.migrations_dir),
            health=build_health_provider(settings, adapter),
            settings=settings,
            caller=caller,
            **kwargs,
        )


def build_health_provider(
    settings: MailspineSettings, adapter: DatabaseAdapter
) -> CheckedHealthProvider:
    """Default provider: ``database`` check always, ``cache`` when a Redis URL is set."""
    checks = [HealthCheck("database", database_check(adapter))]
    if settings.redis_url:
        checks.append(HealthCheck("cache", redis_check(settings.redis_url)))
    critical = tuple(
        name for name in settings.critical_service_names if name in {hc.name for hc in checks}
    )
    return CheckedHealthProvider(
        checks,
        critical=critical,
        required_env=settings.required_env_names,
        version=settings.app_version,
        environment=settings.environment,
    )


__all__ = ["OperationContext", "build_health_provider"]
