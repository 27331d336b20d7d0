"""Deployment lock - keeps two releases from running against one database.

A single row in ``deployment_locks`` is the lock. Acquiring it is an
INSERT against a primary key, so the database arbitrates between two
racing processes; an expired row (a crashed deploy) is deleted first.

::

    acquire(owner)
        DELETE expired row      (own transaction)
        INSERT lock row         (own transaction)
            ├─ ok        → True
            └─ conflict  → held by owner?  → extend, True
                                  otherwise → False

    release(owner)
        DELETE row WHERE owner = owner

Example:
    >>> lock = DeploymentLock(adapter)
    >>> if lock.acquire(deployment_id, timeout_seconds=3600):
    ...     try:
    ...         run_release()
    ...     finally:
    ...         lock.release(deployment_id)
"""

from __future__ import annotations

from datetime import timedelta

from mailspine.core.adapters import DatabaseAdapter
from mailspine.core.logging import get_logger
from mailspine.core.timestamps import coerce_datetime, to_iso8601, utc_now

logger = get_logger(__name__)

LOCK_TABLE = "deployment_locks"
DEFAULT_LOCK_KEY = "deployment"


class DeploymentLock:
    """Database-backed advisory lock for the release pipeline."""

    def __init__(self, adapter: DatabaseAdapter, lock_key: str = DEFAULT_LOCK_KEY):
        self._adapter = adapter
        self._key = lock_key
        self._table_ready = False

    def _ensure_table(self) -> None:
        if self._table_ready:
            return
        ts = self._adapter.dialect.timestamp_type()
        with self._adapter.transaction() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {LOCK_TABLE} (
                    lock_key VARCHAR(64) PRIMARY KEY,
                    owner VARCHAR(64) NOT NULL,
                    acquired_at {ts} NOT NULL,
                    expires_at {ts} NOT NULL
                )
                """
            )
        self._table_ready = True

    def acquire(self, owner: str, timeout_seconds: int = 3600) -> bool:
        """Try to take the lock for ``owner``.

        Returns:
            True if acquired (or already held by ``owner``, whose expiry is
            extended), False if another owner holds an unexpired lock.
        """
        self._ensure_table()
        p = self._adapter.dialect.placeholder
        now = utc_now()
        expires_at = now + timedelta(seconds=timeout_seconds)

        with self._adapter.transaction() as conn:
            conn.execute(
                f"DELETE FROM {LOCK_TABLE} WHERE lock_key = {p(0)} AND expires_at < {p(1)}",
                (self._key, to_iso8601(now)),
            )

        try:
            with self._adapter.transaction() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {LOCK_TABLE} (lock_key, owner, acquired_at, expires_at)
                    VALUES ({self._adapter.dialect.placeholders(4)})
                    """,
                    (self._key, owner, to_iso8601(now), to_iso8601(expires_at)),
                )
            logger.info("lock.acquired", lock_key=self._key, owner=owner)
            return True
        except Exception:
            # Lock already exists - check if we own it
            holder = self.holder()
            if holder == owner:
                with self._adapter.transaction() as conn:
                    conn.execute(
                        f"UPDATE {LOCK_TABLE} SET expires_at = {p(0)} "
                        f"WHERE lock_key = {p(1)} AND owner = {p(2)}",
                        (to_iso8601(expires_at), self._key, owner),
                    )
                return True
            logger.warning("lock.busy", lock_key=self._key, owner=owner, holder=holder)
            return False

    def release(self, owner: str) -> bool:
        """Release the lock if ``owner`` holds it."""
        self._ensure_table()
        p = self._adapter.dialect.placeholder
        with self._adapter.transaction() as conn:
            cur = conn.execute(
                f"DELETE FROM {LOCK_TABLE} WHERE lock_key = {p(0)} AND owner = {p(1)}",
                (self._key, owner),
            )
            released = cur.rowcount > 0
        if released:
            logger.info("lock.released", lock_key=self._key, owner=owner)
        return released

    def holder(self) -> str | None:
        """Owner of the unexpired lock, if any."""
        self._ensure_table()
        row = self._adapter.query_one(
            f"SELECT owner, expires_at FROM {LOCK_TABLE} "
            f"WHERE lock_key = {self._adapter.dialect.placeholder(0)}",
            (self._key,),
        )
        if row is None:
            return None
        if coerce_datetime(row[1]) < utc_now():
            return None
        return row[0]


__all__ = ["DEFAULT_LOCK_KEY", "LOCK_TABLE", "DeploymentLock"]
