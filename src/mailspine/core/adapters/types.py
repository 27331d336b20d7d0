"""Database types and connection configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DatabaseType(str, Enum):
    """Supported database types."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


@dataclass
class DatabaseConfig:
    """
    Configuration for a database connection.

    SQLite uses ``path``; PostgreSQL uses ``dsn`` (a libpq URL or key/value
    string) plus the pool settings.
    """

    db_type: DatabaseType = DatabaseType.SQLITE

    # SQLite
    path: str | None = None

    # PostgreSQL
    dsn: str | None = None
    pool_min: int = 1
    pool_size: int = 5
    connect_timeout: int = 10

    # Extra options (driver-specific)
    options: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "DatabaseConfig",
    "DatabaseType",
]
