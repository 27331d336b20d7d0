"""Ready-made dependency checks for :class:`CheckedHealthProvider`.

Each factory returns a zero-argument callable that returns ``True`` or
raises; the provider turns the exception text into ``ServiceHealth.error``.
"""

from __future__ import annotations

from collections.abc import Callable

from mailspine.core.adapters import DatabaseAdapter


def database_check(adapter: DatabaseAdapter) -> Callable[[], bool]:
    """``SELECT 1`` through the injected adapter."""

    def _check() -> bool:
        row = adapter.query_one("SELECT 1")
        return row is not None and row[0] == 1

    return _check


def redis_check(url: str, *, timeout: float = 3.0) -> Callable[[], bool]:
    """``PING`` a Redis instance (requires the ``redis`` extra)."""

    def _check() -> bool:
        import redis  # noqa: PLC0415

        client = redis.Redis.from_url(url, socket_timeout=timeout)
        try:
            return bool(client.ping())
        finally:
            client.close()

    return _check


__all__ = ["database_check", "redis_check"]
