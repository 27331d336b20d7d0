"""Database adapter base class.

Manifesto:
    The migration runner, deployment ledger and deployment lock receive an
    adapter by injection and never open connections themselves. The
    adapter owns connection lifecycle and, above all, transaction
    boundaries: one migration is one ``with adapter.transaction()`` block.

Features:
    - Abstract ``connect()``, ``disconnect()``, ``connection()``, ``transaction()``
    - Dialect chosen from the configured database type
    - Context-manager protocol for adapter lifecycle

Tags:
    mailspine, database, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any

from mailspine.core.dialect import Dialect, get_dialect
from mailspine.core.protocols import Connection

from .types import DatabaseConfig, DatabaseType


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    ``transaction()`` yields a connection inside an open transaction which
    is committed when the block exits normally and rolled back when it
    raises. ``connection()`` yields a connection for reads and single
    autocommitted writes.
    """

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._connected = False
        self._dialect: Dialect = get_dialect(config.db_type.value)

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def db_type(self) -> DatabaseType:
        """Database type."""
        return self._config.db_type

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to database."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to database."""
        ...

    @abstractmethod
    def connection(self) -> AbstractContextManager[Connection]:
        """Context manager yielding a connection outside an explicit transaction."""
        ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Connection]:
        """Context manager for a transaction."""
        ...

    def query(self, sql: str, params: tuple = ()) -> list[tuple[Any, ...]]:
        """Execute a query and return all rows as tuples."""
        with self.connection() as conn:
            return [tuple(row) for row in conn.execute(sql, params).fetchall()]

    def query_one(self, sql: str, params: tuple = ()) -> tuple[Any, ...] | None:
        """Execute a query and return the first row, if any."""
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def table_exists(self, table: str) -> bool:
        """Whether ``table`` exists in the current schema."""
        return self.query_one(self._dialect.table_exists_query(), (table,)) is not None

    def __enter__(self) -> DatabaseAdapter:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()


__all__ = [
    "DatabaseAdapter",
]
