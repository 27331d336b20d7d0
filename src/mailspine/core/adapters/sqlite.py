"""SQLite database adapter."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from mailspine.core.errors import DatabaseConnectionError
from mailspine.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Uses the built-in sqlite3 module with one shared connection. Suitable for:
    - Development and testing
    - Single-host installs

    The connection runs with ``isolation_level=None`` and transactions are
    opened with an explicit ``BEGIN``, so DDL inside a migration is rolled
    back together with the rest of it.
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        timeout: float = 5.0,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.SQLITE,
            path=path,
            options=kwargs,
        )
        super().__init__(config)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def connect(self) -> None:
        """Connect to SQLite database."""
        path = self._config.path or ":memory:"
        uri = path.startswith("file:")

        try:
            self._conn = sqlite3.connect(
                path,
                timeout=self._timeout,
                check_same_thread=False,
                isolation_level=None,
                uri=uri,
            )
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._connected = True

        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close SQLite connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
            self._connected = False

    def get_connection(self) -> sqlite3.Connection:
        """Get the SQLite connection, connecting on first use."""
        if not self._conn:
            self.connect()
        return self._conn

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Yield the shared connection (autocommit)."""
        with self._lock:
            yield self.get_connection()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Transaction context manager."""
        with self._lock:
            conn = self.get_connection()
            conn.execute("BEGIN")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.rollback()
                raise
            else:
                if conn.in_transaction:
                    conn.commit()


__all__ = [
    "SQLiteAdapter",
]
