"""SQL dialect abstraction for the tracking, ledger and lock tables.

The release core writes to three tables of its own (``schema_migrations``,
``deployment_logs``, ``deployment_locks``). It runs against SQLite in
development and tests and PostgreSQL in production, so every placeholder
and DDL fragment comes from a ``Dialect``.

Architecture::

    ┌──────────────────────────────────────────────────────────────┐
    │  sql = f"INSERT INTO t (a, b) VALUES ({d.placeholders(2)})"  │
    │  ddl = f"id {d.auto_increment()}, at {d.timestamp_type()}"   │
    └──────────────────────────────────────────────────────────────┘
                      │                         │
                      ▼                         ▼
             ┌────────────────┐        ┌──────────────────┐
             │ SQLiteDialect  │        │ PostgreSQLDialect│
             │ ?, ?, TEXT     │        │ %s, TIMESTAMPTZ  │
             └────────────────┘        └──────────────────┘

Examples:
    >>> from mailspine.core.dialect import get_dialect
    >>> get_dialect("sqlite").placeholders(3)
    '?, ?, ?'
    >>> get_dialect("postgres").auto_increment()
    'SERIAL PRIMARY KEY'

Tags:
    dialect, sql, portability, database, mailspine
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL fragment generator for one database backend."""

    @property
    def name(self) -> str: ...

    def placeholder(self, index: int) -> str: ...

    def placeholders(self, count: int) -> str: ...

    def auto_increment(self) -> str: ...

    def timestamp_type(self) -> str: ...

    def boolean_type(self) -> str: ...

    def table_exists_query(self) -> str: ...


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders, ISO-8601 text timestamps."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def auto_increment(self) -> str:
        return "INTEGER PRIMARY KEY AUTOINCREMENT"

    def timestamp_type(self) -> str:
        return "TEXT"

    def boolean_type(self) -> str:
        return "INTEGER"

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type='table' AND name = ?"


class PostgreSQLDialect:
    """PostgreSQL dialect: ``%s`` placeholders (psycopg2), ``TIMESTAMPTZ``."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def auto_increment(self) -> str:
        return "SERIAL PRIMARY KEY"

    def timestamp_type(self) -> str:
        return "TIMESTAMP WITH TIME ZONE"

    def boolean_type(self) -> str:
        return "BOOLEAN"

    def table_exists_query(self) -> str:
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = %s"
        )


_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


__all__ = ["Dialect", "PostgreSQLDialect", "SQLiteDialect", "get_dialect"]
