"""
Shared fixtures for mailspine tests.

Every test runs against a throwaway SQLite file under ``tmp_path``; the
health collaborator is replaced by :class:`FakeHealthProvider` and the
readiness sleep by :class:`SleepRecorder`, so nothing waits on a clock.

Usage:
    def test_something(adapter, migrations_dir, write_migration):
        write_migration("001_tenants.sql", "CREATE TABLE tenants (id INTEGER);")
"""

from __future__ import annotations

import textwrap
from collections.abc import Callable, Generator, Iterable
from pathlib import Path

import pytest

from mailspine.core.adapters import SQLiteAdapter
from mailspine.deploy import DeploymentLedger
from mailspine.health import AggregateHealth, Readiness, ServiceHealth
from mailspine.migrations import MigrationRunner


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        if "/cli/" in str(item.fspath) or "/ops/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "mailspine.db"


@pytest.fixture()
def adapter(db_path: Path) -> Generator[SQLiteAdapter, None, None]:
    """File-backed SQLite adapter, closed after the test."""
    a = SQLiteAdapter(str(db_path))
    a.connect()
    yield a
    a.disconnect()


def table_names(adapter: SQLiteAdapter) -> set[str]:
    return {row[0] for row in adapter.query("SELECT name FROM sqlite_master WHERE type='table'")}


# =============================================================================
# Migrations
# =============================================================================


@pytest.fixture()
def migrations_dir(tmp_path: Path) -> Path:
    d = tmp_path / "migrations"
    d.mkdir()
    return d


@pytest.fixture()
def write_migration(migrations_dir: Path) -> Callable[..., Path]:
    """Write ``NNN_name.sql`` (and optionally its rollback script)."""

    def _write(filename: str, body: str, rollback: str | None = None) -> Path:
        path = migrations_dir / filename
        path.write_text(textwrap.dedent(body), encoding="utf-8")
        if rollback is not None:
            stem = filename[: -len(".sql")]
            (migrations_dir / f"{stem}.rollback.sql").write_text(
                textwrap.dedent(rollback), encoding="utf-8"
            )
        return path

    return _write


@pytest.fixture()
def runner(adapter: SQLiteAdapter, migrations_dir: Path) -> MigrationRunner:
    return MigrationRunner(adapter, migrations_dir)


# =============================================================================
# Ledger
# =============================================================================


@pytest.fixture()
def ledger(adapter: SQLiteAdapter) -> DeploymentLedger:
    """Ledger with ``deployment_logs`` created (external schema setup)."""
    led = DeploymentLedger(adapter)
    led.initialize().unwrap()
    return led


# =============================================================================
# Health
# =============================================================================


class FakeHealthProvider:
    """Scriptable health provider.

    ``readiness`` is consumed one entry per ``get_readiness()`` call; the
    last entry repeats. An entry may be an exception instance, which is
    raised instead.
    """

    def __init__(
        self,
        *,
        services: dict[str, str] | None = None,
        version: str | None = "1.0.0",
        readiness: Iterable[bool | Exception] = (True,),
        aggregate_error: Exception | None = None,
    ) -> None:
        self.services = services if services is not None else {
            "database": "healthy",
            "cache": "healthy",
        }
        self.version = version
        self.readiness = list(readiness)
        self.aggregate_error = aggregate_error
        self.readiness_calls = 0
        self.aggregate_calls = 0

    def get_aggregate_health(self) -> AggregateHealth:
        self.aggregate_calls += 1
        if self.aggregate_error is not None:
            raise self.aggregate_error
        statuses = set(self.services.values())
        overall = "unhealthy" if "unhealthy" in statuses else (
            "degraded" if "degraded" in statuses else "healthy"
        )
        return AggregateHealth(
            status=overall,
            services={name: ServiceHealth(status=s) for name, s in self.services.items()},
            version=self.version,
            environment="test",
            uptime_s=12.5,
        )

    def get_readiness(self) -> Readiness:
        index = min(self.readiness_calls, len(self.readiness) - 1)
        self.readiness_calls += 1
        entry = self.readiness[index]
        if isinstance(entry, Exception):
            raise entry
        return Readiness(ready=entry, issues=[] if entry else ["Critical service cache is unhealthy"])


class SleepRecorder:
    """Stand-in for ``time.sleep`` that records instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture()
def health() -> FakeHealthProvider:
    return FakeHealthProvider()


@pytest.fixture()
def no_sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def make_health() -> type[FakeHealthProvider]:
    """Factory for providers with non-default behaviour."""
    return FakeHealthProvider


@pytest.fixture()
def tables(adapter: SQLiteAdapter) -> Callable[[], set[str]]:
    """Names of the tables currently in the test database."""
    return lambda: table_names(adapter)
