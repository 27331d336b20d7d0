"""Adapter factory.

``get_adapter()`` turns the configured ``MAILSPINE_DATABASE_URL`` into an
adapter instance; nothing else in the package names an adapter class.

Examples:
    >>> get_adapter("sqlite:///:memory:").dialect.name
    'sqlite'
    >>> get_adapter("sqlite:////var/lib/mailspine/app.db")._config.path
    '/var/lib/mailspine/app.db'

Tags:
    mailspine, database, factory
"""

from __future__ import annotations

from typing import Any

from mailspine.core.errors import ConfigError

from .base import DatabaseAdapter
from .postgresql import PostgreSQLAdapter
from .sqlite import SQLiteAdapter

_SQLITE_PREFIX = "sqlite:///"
_POSTGRES_SCHEMES = ("postgresql://", "postgres://")


def get_adapter(url: str, **kwargs: Any) -> DatabaseAdapter:
    """
    Build a database adapter from a URL.

    Usage:
        adapter = get_adapter("sqlite:///mailspine.db")
        adapter = get_adapter("postgresql://deploy@db:5432/mailspine", pool_size=2)

    Raises:
        ConfigError: The URL is empty or uses an unsupported scheme.
    """
    if not url:
        raise ConfigError("Database URL is not configured (set MAILSPINE_DATABASE_URL)")

    if url.startswith(_SQLITE_PREFIX):
        path = url[len(_SQLITE_PREFIX):] or ":memory:"
        return SQLiteAdapter(path, **kwargs)
    if url == "sqlite://":
        return SQLiteAdapter(":memory:", **kwargs)
    if url.startswith(_POSTGRES_SCHEMES):
        return PostgreSQLAdapter(url, **kwargs)

    scheme = url.split(":", 1)[0]
    raise ConfigError(f"Unsupported database URL scheme: {scheme}")


__all__ = [
    "get_adapter",
]
