"""
UTC timestamp helpers (stdlib-only).

The tracking, ledger and lock tables store ISO-8601 strings written from
Python so SQLite and PostgreSQL rows compare the same way. Drivers hand
timestamps back either as strings (SQLite) or as ``datetime`` objects
(psycopg2); :func:`coerce_datetime` accepts both.

STDLIB ONLY - NO PYDANTIC.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def to_iso8601(dt: datetime | None) -> str | None:
    """Convert datetime to ISO 8601 string."""
    if dt is None:
        return None
    return dt.isoformat()


def coerce_datetime(value: datetime | str | None) -> datetime | None:
    """Normalise a driver value to a timezone-aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds between two datetimes."""
    return int((end - start).total_seconds() * 1000)


__all__ = ["coerce_datetime", "elapsed_ms", "to_iso8601", "utc_now"]
