"""
Canonical protocol definitions for mailspine.

Every module that talks to the database or to the health collaborator
types against these shapes, never against a driver or a concrete service.

Architecture:
    ::

        protocols.py
        ├── Connection       - sync DB protocol (sqlite3, psycopg2 wrapper)
        └── Cursor           - what Connection.execute() hands back

    Consumers:
        migrations/store.py, migrations/runner.py, deploy/ledger.py,
        deploy/lock.py, health/checks.py

Guardrails:
    ❌ DON'T: Import sqlite3 or psycopg2 in migration or deploy code
    ✅ DO: Use Connection + Dialect for all SQL access

Tags:
    protocol, connection, database, contracts, mailspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """Result-set handle returned by :meth:`Connection.execute`."""

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list: ...


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface.

    ``execute`` returns a cursor; callers read rows from that cursor rather
    than from the connection, which is how both ``sqlite3.Connection`` and
    the psycopg2 wrapper behave.

    ::

        ┌────────────────────────────────────────────────────────┐
        │ execute(sql, params)   → Cursor                        │
        │ commit()               → Commit transaction            │
        │ rollback()             → Rollback transaction          │
        └────────────────────────────────────────────────────────┘

    Examples:
        >>> def count_applied(conn: Connection) -> int:
        ...     cur = conn.execute("SELECT COUNT(*) FROM schema_migrations")
        ...     return cur.fetchone()[0]
    """

    def execute(self, sql: str, params: tuple = ()) -> Any: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


__all__ = ["Connection", "Cursor"]
