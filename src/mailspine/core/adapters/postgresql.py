"""PostgreSQL database adapter."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from mailspine.core.errors import ConfigError, DatabaseConnectionError
from mailspine.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType


class PgConnection:
    """psycopg2 connection exposing ``execute()`` like ``sqlite3.Connection``."""

    def __init__(self, raw: Any):
        self._raw = raw

    @property
    def raw(self) -> Any:
        return self._raw

    def execute(self, sql: str, params: tuple = ()) -> Any:
        cursor = self._raw.cursor()
        cursor.execute(sql, params or None)
        return cursor

    def commit(self) -> None:
        self._raw.commit()

    def rollback(self) -> None:
        self._raw.rollback()


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter.

    Uses a psycopg2 ``ThreadedConnectionPool``. Every ``connection()`` and
    ``transaction()`` block checks out one pooled connection and returns it
    on exit. psycopg2 opens a transaction implicitly on the first
    statement, so both blocks end with a commit (or a rollback on error).
    """

    def __init__(
        self,
        dsn: str,
        *,
        pool_min: int = 1,
        pool_size: int = 5,
        connect_timeout: int = 10,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.POSTGRESQL,
            dsn=dsn,
            pool_min=pool_min,
            pool_size=pool_size,
            connect_timeout=connect_timeout,
            options=kwargs,
        )
        super().__init__(config)
        self._pool: Any = None

    def connect(self) -> None:
        """Create the connection pool."""
        try:
            import psycopg2
            import psycopg2.pool
        except ImportError:
            raise ConfigError(
                "psycopg2 is required for PostgreSQL. "
                "Install with: pip install mailspine[postgres]"
            ) from None

        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=self._config.pool_min,
                maxconn=self._config.pool_size,
                dsn=self._config.dsn,
                connect_timeout=self._config.connect_timeout,
                **self._config.options,
            )
            self._connected = True
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close PostgreSQL connection pool."""
        if self._pool:
            self._pool.closeall()
            self._pool = None
            self._connected = False

    def _checkout(self) -> Any:
        if not self._pool:
            self.connect()
        return self._pool.getconn()

    def _return_connection(self, conn: Any) -> None:
        """Return connection to pool."""
        if self._pool:
            self._pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Transaction context manager."""
        raw = self._checkout()
        conn = PgConnection(raw)
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            self._return_connection(raw)

    def connection(self):
        """Pooled connection; commits on exit like :meth:`transaction`."""
        return self.transaction()


__all__ = [
    "PgConnection",
    "PostgreSQLAdapter",
]
