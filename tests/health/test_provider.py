"""Tests for the check-based health provider."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from mailspine.health import (
    CheckedHealthProvider,
    HealthCheck,
    HealthStatusProvider,
    ServiceHealth,
    compute_status,
    database_check,
    redis_check,
)


def _healthy() -> bool:
    return True


def _down() -> bool:
    raise ConnectionError("connection refused")


class TestComputeStatus:
    def test_all_healthy(self):
        checks = [HealthCheck("database", _healthy)]
        assert compute_status({"database": ServiceHealth(status="healthy")}, checks) == "healthy"

    def test_required_down_is_unhealthy(self):
        checks = [HealthCheck("database", _down), HealthCheck("cache", _healthy, required=False)]
        results = {
            "database": ServiceHealth(status="unhealthy"),
            "cache": ServiceHealth(status="healthy"),
        }
        assert compute_status(results, checks) == "unhealthy"

    def test_optional_down_is_degraded(self):
        checks = [HealthCheck("database", _healthy), HealthCheck("cache", _down, required=False)]
        results = {
            "database": ServiceHealth(status="healthy"),
            "cache": ServiceHealth(status="unhealthy"),
        }
        assert compute_status(results, checks) == "degraded"


class TestAggregateHealth:
    def test_reports_services_and_identity(self):
        provider = CheckedHealthProvider(
            [HealthCheck("database", _healthy), HealthCheck("cache", _down)],
            version="2.4.0",
            environment="staging",
        )
        health = provider.get_aggregate_health()
        assert health.status == "unhealthy"
        assert health.services["database"].status == "healthy"
        assert health.services["cache"].error == "connection refused"
        assert health.version == "2.4.0"
        assert health.environment == "staging"
        assert health.uptime_s >= 0

    def test_false_return_is_unhealthy(self):
        provider = CheckedHealthProvider([HealthCheck("database", lambda: False)])
        svc = provider.get_aggregate_health().services["database"]
        assert svc.status == "unhealthy"
        assert svc.error == "check returned false"

    def test_satisfies_protocol(self):
        assert isinstance(CheckedHealthProvider([]), HealthStatusProvider)


class TestReadiness:
    def test_ready(self):
        provider = CheckedHealthProvider(
            [HealthCheck("database", _healthy), HealthCheck("cache", _healthy)],
            required_env=("SMTP_HOST",),
            environ={"SMTP_HOST": "smtp.internal"},
        )
        readiness = provider.get_readiness()
        assert readiness.ready is True
        assert readiness.issues == []

    def test_unhealthy_critical_service(self):
        provider = CheckedHealthProvider(
            [HealthCheck("database", _healthy), HealthCheck("cache", _down)], environ={}
        )
        readiness = provider.get_readiness()
        assert readiness.ready is False
        assert readiness.issues == ["Critical service cache is unhealthy: connection refused"]

    def test_critical_service_without_check(self):
        provider = CheckedHealthProvider([HealthCheck("database", _healthy)], environ={})
        assert provider.get_readiness().issues == ["Critical service cache has no health check"]

    def test_non_critical_failure_does_not_block(self):
        provider = CheckedHealthProvider(
            [HealthCheck("database", _healthy), HealthCheck("search", _down, required=False)],
            critical=("database",),
            environ={},
        )
        assert provider.get_readiness().ready is True

    def test_missing_environment(self):
        provider = CheckedHealthProvider(
            [HealthCheck("database", _healthy)],
            critical=("database",),
            required_env=("SMTP_HOST", "JWT_SECRET", "SET"),
            environ={"SET": "1", "JWT_SECRET": ""},
        )
        assert provider.get_readiness().issues == [
            "Missing required environment variables: SMTP_HOST, JWT_SECRET"
        ]


class TestChecks:
    def test_database_check(self, adapter):
        assert database_check(adapter)() is True

    def test_database_check_raises_when_closed(self):
        broken = MagicMock()
        broken.query_one.side_effect = RuntimeError("closed")
        with pytest.raises(RuntimeError):
            database_check(broken)()

    def test_redis_check_pings(self):
        fake_redis = MagicMock()
        fake_redis.Redis.from_url.return_value.ping.return_value = True
        with patch.dict("sys.modules", {"redis": fake_redis}):
            assert redis_check("redis://cache:6379/0", timeout=1.0)() is True
        fake_redis.Redis.from_url.assert_called_once_with("redis://cache:6379/0", socket_timeout=1.0)
        fake_redis.Redis.from_url.return_value.close.assert_called_once()
