"""Tests for the database-backed deployment lock."""

from __future__ import annotations

from mailspine.core.adapters import SQLiteAdapter
from mailspine.deploy import DeploymentLock


class TestDeploymentLock:
    def test_acquire_and_release(self, adapter):
        lock = DeploymentLock(adapter)
        assert lock.acquire("d1") is True
        assert lock.holder() == "d1"
        assert lock.release("d1") is True
        assert lock.holder() is None

    def test_exclusive(self, adapter):
        lock = DeploymentLock(adapter)
        assert lock.acquire("d1") is True
        assert lock.acquire("d2") is False
        assert lock.holder() == "d1"

    def test_exclusive_across_connections(self, adapter, db_path):
        assert DeploymentLock(adapter).acquire("d1") is True
        other = SQLiteAdapter(str(db_path))
        try:
            assert DeploymentLock(other).acquire("d2") is False
        finally:
            other.disconnect()

    def test_reacquire_by_owner_extends(self, adapter):
        lock = DeploymentLock(adapter)
        lock.acquire("d1", timeout_seconds=10)
        before = adapter.query_one("SELECT expires_at FROM deployment_locks")[0]
        assert lock.acquire("d1", timeout_seconds=3600) is True
        after = adapter.query_one("SELECT expires_at FROM deployment_locks")[0]
        assert after > before

    def test_expired_lock_is_taken_over(self, adapter):
        lock = DeploymentLock(adapter)
        lock.acquire("crashed")
        with adapter.transaction() as conn:
            conn.execute(
                "UPDATE deployment_locks SET expires_at = ?", ("2000-01-01T00:00:00+00:00",)
            )
        assert lock.holder() is None
        assert lock.acquire("d2") is True
        assert lock.holder() == "d2"

    def test_release_by_other_owner_is_noop(self, adapter):
        lock = DeploymentLock(adapter)
        lock.acquire("d1")
        assert lock.release("d2") is False
        assert lock.holder() == "d1"

    def test_independent_keys(self, adapter):
        assert DeploymentLock(adapter, lock_key="eu").acquire("d1") is True
        assert DeploymentLock(adapter, lock_key="us").acquire("d2") is True
