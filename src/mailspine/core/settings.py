"""Process-wide settings for mailspine.

The release tooling runs in three places (a developer laptop against
SQLite, CI against a throwaway PostgreSQL, and the production deploy job)
and each one configures it purely through ``MAILSPINE_*`` environment
variables or a ``.env`` file.

Manifesto:
    - **Pydantic validation:** Type-checked at startup, not halfway through a release
    - **Environment-driven:** Reads from env vars and .env files
    - **Sensible defaults:** ``sqlite:///mailspine.db`` and ``./migrations`` work out of the box

Features:
    - **MailspineSettings:** database URL, migrations directory, logging, app identity,
      health-gate inputs (critical services, required env vars, Redis URL)
    - **env_prefix:** ``MAILSPINE_``
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> import os
    >>> os.environ["MAILSPINE_CRITICAL_SERVICES"] = "database, cache"
    >>> MailspineSettings().critical_service_names
    ('database', 'cache')

Tags:
    settings, configuration, pydantic, environment, mailspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_names(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


class MailspineSettings(BaseSettings):
    """Settings shared by the CLI, the ops layer and the health provider.

    Fields
    ──────
    database_url      : ``sqlite:///path`` or ``postgresql://...``
    migrations_dir    : Directory holding ``NNN_name.sql`` definitions
    log_level         : Structlog log level
    log_json          : Force JSON logs (None = auto, JSON when not a tty)
    app_version       : Version the running application reports
    environment       : Deployment environment name
    critical_services : Comma-separated services that gate a release
    required_env      : Comma-separated env vars readiness requires
    redis_url         : Optional cache URL for the ``cache`` health check
    """

    model_config = SettingsConfigDict(
        env_prefix="MAILSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = "sqlite:///mailspine.db"
    migrations_dir: Path = Field(
        default=Path("migrations"),
        description="Directory containing ordered migration definitions",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    # ── Application identity ─────────────────────────────────────
    app_version: str = "unknown"
    environment: str = "production"

    # ── Health gate ──────────────────────────────────────────────
    critical_services: str = "database,cache"
    required_env: str = ""
    redis_url: str | None = None

    @property
    def critical_service_names(self) -> tuple[str, ...]:
        return _split_names(self.critical_services)

    @property
    def required_env_names(self) -> tuple[str, ...]:
        return _split_names(self.required_env)


@lru_cache(maxsize=1)
def get_settings() -> MailspineSettings:
    """Cached settings instance for the CLI process."""
    return MailspineSettings()


__all__ = ["MailspineSettings", "get_settings"]
