"""Configuration for one release.

``DeploymentConfig`` describes a single run of the release pipeline: what
is being shipped (version, commit, build), who ships it, and how patient
and how forgiving the pipeline should be (health-gate timing, automatic
rollback, per-step time limits, locking).

Key Concepts:
    DeploymentConfig: Pydantic v2 model. ``from_env()`` reads
        ``MAILSPINE_DEPLOY_*`` environment variables so a CI job can
        configure a release without code.
    Override precedence: kwargs > env vars > field defaults.

Examples:
    >>> config = DeploymentConfig(version="2.4.0", rollback_on_failure=True)
    >>> config.health_check_attempts
    12

    CI usage::

        MAILSPINE_DEPLOY_VERSION=2.4.0 \\
        MAILSPINE_DEPLOY_ROLLBACK_ON_FAILURE=true \\
        mailspine deploy run

Tags:
    config, pydantic, deployment, environment, mailspine
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field, model_validator

_TRUE_VALUES = ("true", "1", "yes")


class DeploymentConfig(BaseModel):
    """Configuration for a single deployment.

    Example::

        config = DeploymentConfig(
            version="2.4.0",
            environment="staging",
            commit_hash="9c1e7f2",
            deployed_by="release-bot",
            rollback_on_failure=True,
        )
    """

    # What is being deployed
    version: str = Field(description="Release version; verification compares against it")
    environment: str = Field(default="production")
    commit_hash: str | None = None
    build_time: str | None = None
    deployed_by: str | None = None
    notes: str | None = None

    # Health gate
    health_check_timeout_ms: int = Field(
        default=60_000,
        ge=0,
        description="Total readiness polling window",
    )
    health_check_interval_ms: int = Field(
        default=5_000,
        gt=0,
        description="Pause between readiness attempts",
    )

    # Failure handling
    rollback_on_failure: bool = Field(
        default=False,
        description="Revert the last migration and mark the record rolled_back on failure",
    )

    # Step time limits (None = no limit)
    pre_check_timeout_ms: int | None = Field(default=None, gt=0)
    migration_timeout_ms: int | None = Field(default=None, gt=0)

    # Concurrency guard
    use_lock: bool = True
    lock_timeout_seconds: int = Field(default=3600, gt=0)

    @model_validator(mode="after")
    def _check_version(self) -> DeploymentConfig:
        if not self.version.strip():
            raise ValueError("version must not be empty")
        return self

    @property
    def health_check_attempts(self) -> int:
        """``floor(timeout / interval)``; a window shorter than one interval gives 0."""
        return self.health_check_timeout_ms // self.health_check_interval_ms

    @classmethod
    def from_env(cls, **overrides: Any) -> DeploymentConfig:
        """Create config from MAILSPINE_DEPLOY_* environment variables."""
        env_map = {
            "version": "MAILSPINE_DEPLOY_VERSION",
            "environment": "MAILSPINE_DEPLOY_ENVIRONMENT",
            "commit_hash": "MAILSPINE_DEPLOY_COMMIT_HASH",
            "build_time": "MAILSPINE_DEPLOY_BUILD_TIME",
            "deployed_by": "MAILSPINE_DEPLOY_DEPLOYED_BY",
            "notes": "MAILSPINE_DEPLOY_NOTES",
            "health_check_timeout_ms": "MAILSPINE_DEPLOY_HEALTH_CHECK_TIMEOUT_MS",
            "health_check_interval_ms": "MAILSPINE_DEPLOY_HEALTH_CHECK_INTERVAL_MS",
            "rollback_on_failure": "MAILSPINE_DEPLOY_ROLLBACK_ON_FAILURE",
            "pre_check_timeout_ms": "MAILSPINE_DEPLOY_PRE_CHECK_TIMEOUT_MS",
            "migration_timeout_ms": "MAILSPINE_DEPLOY_MIGRATION_TIMEOUT_MS",
            "use_lock": "MAILSPINE_DEPLOY_USE_LOCK",
            "lock_timeout_seconds": "MAILSPINE_DEPLOY_LOCK_TIMEOUT_SECONDS",
        }
        int_fields = {
            "health_check_timeout_ms",
            "health_check_interval_ms",
            "pre_check_timeout_ms",
            "migration_timeout_ms",
            "lock_timeout_seconds",
        }
        bool_fields = {"rollback_on_failure", "use_lock"}

        values: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is not None:
                if field_name in int_fields:
                    values[field_name] = int(env_val)
                elif field_name in bool_fields:
                    values[field_name] = env_val.lower() in _TRUE_VALUES
                else:
                    values[field_name] = env_val
        values.update(overrides)
        return cls(**values)


__all__ = ["DeploymentConfig"]
