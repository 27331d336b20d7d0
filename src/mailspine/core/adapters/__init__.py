"""Database adapters -- one interface over SQLite and PostgreSQL.

Architecture::

    DatabaseAdapter (base.py)        connect / connection() / transaction()
        |-- SQLiteAdapter            stdlib sqlite3 (always available)
        |-- PostgreSQLAdapter        psycopg2 pool (``mailspine[postgres]``)

    get_adapter(url) (registry.py)   sqlite:///path | postgresql://...

Guardrails:
    ❌ ``conn.execute("DELETE FROM schema_migrations WHERE filename='" + f + "'")``
    ✅ ``conn.execute(f"... WHERE filename = {d.placeholder(0)}", (f,))``
    ❌ Importing psycopg2 at module scope
    ✅ Import-guarded at ``connect()`` time with a clear ``ConfigError``

Tags:
    mailspine, database, adapters, postgresql, sqlite
"""

from .base import DatabaseAdapter
from .postgresql import PgConnection, PostgreSQLAdapter
from .registry import get_adapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

__all__ = [
    "DatabaseAdapter",
    "DatabaseConfig",
    "DatabaseType",
    "PgConnection",
    "PostgreSQLAdapter",
    "SQLiteAdapter",
    "get_adapter",
]
