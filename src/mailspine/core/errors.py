"""
Structured error types for the mailspine release core.

Every failure the migration runner, deployment ledger and release pipeline
can hit has a named type here. Each carries a category (for routing the
alert to the right people), a retryable flag, structured context
(deployment id, pipeline step, migration filename) and the chained cause.

Manifesto:
    - **Typed hierarchy:** One class per failure the operator must act on
    - **Explicit retry semantics:** Nothing in a release is retried blindly
    - **Rich context:** deployment_id / step / migration travel with the error
    - **Error chaining:** The driver exception is kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       MailspineError                             │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  SourceError            DatabaseError         ReleaseError       │
        │  (SOURCE)               (DATABASE)            (ORCHESTRATION)    │
        │      │                      │                      │             │
        │  SourceUnavailable      TrackingUnavailable   HealthCheckTimeout │
        │                         MigrationExecution    VersionMismatch    │
        │  ConfigError            RollbackScriptMissing DeploymentInProgress│
        │  (CONFIG)               RollbackExecution     StepTimeout        │
        │                         LedgerError                              │
        │  DatabaseConnectionError (DATABASE, retryable)                   │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = MigrationExecutionError("syntax error", filename="002_users.sql")
    >>> err.category.value
    'DATABASE'
    >>> err.context.migration
    '002_users.sql'

    >>> VersionMismatchError(expected="2.4.0", actual="2.3.9").message
    'Version mismatch: expected 2.4.0, got 2.3.9'

Guardrails:
    ❌ DON'T: Raise bare Exception from the runner or ledger
    ✅ DO: Return Err(<typed error>) so callers can branch on the type

    ❌ DON'T: Drop the driver exception
    ✅ DO: Pass it as cause=

Tags:
    error-handling, exception-hierarchy, migrations, deployment,
    mailspine, observability

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Infrastructure categories (DATABASE, NETWORK) go to the platform on-call;
    SOURCE and CONFIG usually mean a bad release artifact or environment;
    ORCHESTRATION covers release-gate decisions (health timeout, version
    mismatch, concurrent release).
    """

    NETWORK = "NETWORK"  # Connection, timeout, DNS
    DATABASE = "DATABASE"  # Connection pool, statement failures
    SOURCE = "SOURCE"  # Migration directory, release artifacts
    CONFIG = "CONFIG"  # Missing config, invalid settings
    ORCHESTRATION = "ORCHESTRATION"  # Release pipeline gates
    INTERNAL = "INTERNAL"  # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Typed fields cover what a release postmortem needs; anything else goes
    into ``metadata``. ``to_dict()`` drops unset fields so log lines stay
    short.

    Examples:
        >>> ctx = ErrorContext(deployment_id="9f1c", step="Database Migrations")
        >>> ctx.to_dict()
        {'deployment_id': '9f1c', 'step': 'Database Migrations'}
    """

    deployment_id: str | None = None
    step: str | None = None
    migration: str | None = None
    environment: str | None = None
    version: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["deployment_id", "step", "migration", "environment", "version"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MailspineError(Exception):
    """
    Base class for every mailspine error.

    Subclasses set ``default_category`` / ``default_retryable``; callers may
    override either per instance.

    Examples:
        >>> error = MailspineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(step="Application Startup").context.step
        'Application Startup'
        >>> error.to_dict()["error_type"]
        'MailspineError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MailspineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise LedgerError("update failed").with_context(
                deployment_id=deployment_id, step="finalize"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION / CONNECTION
# =============================================================================


class ConfigError(MailspineError):
    """Missing or invalid configuration (database URL, directories, timeouts)."""

    default_category = ErrorCategory.CONFIG


class DatabaseConnectionError(MailspineError):
    """Could not open or check out a database connection."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


# =============================================================================
# MIGRATION SOURCE / TRACKING
# =============================================================================


class SourceError(MailspineError):
    """Problem with the release artifacts on disk."""

    default_category = ErrorCategory.SOURCE


class SourceUnavailableError(SourceError):
    """The migration definition directory is missing or unreadable."""


class DatabaseError(MailspineError):
    """Base for statement-level database failures."""

    default_category = ErrorCategory.DATABASE


class TrackingUnavailableError(DatabaseError):
    """The ``schema_migrations`` tracking table could not be created or queried."""


class MigrationExecutionError(DatabaseError):
    """A migration's statements failed; its transaction was rolled back."""

    def __init__(self, message: str, *, filename: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.filename = filename
        if filename:
            self.context.migration = filename


class RollbackScriptMissingError(DatabaseError):
    """No ``<name>.rollback.sql`` exists for the migration being reversed."""

    def __init__(self, filename: str, rollback_filename: str, **kwargs: Any):
        super().__init__(
            f"Rollback script {rollback_filename} not found for {filename}",
            **kwargs,
        )
        self.filename = filename
        self.rollback_filename = rollback_filename
        self.context.migration = filename


class RollbackExecutionError(DatabaseError):
    """The rollback script failed; the migration record was left in place."""

    def __init__(self, message: str, *, filename: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.filename = filename
        if filename:
            self.context.migration = filename


class LedgerError(DatabaseError):
    """Reading or writing the ``deployment_logs`` ledger failed."""


# =============================================================================
# RELEASE PIPELINE
# =============================================================================


class ReleaseError(MailspineError):
    """Base for release-gate failures raised inside pipeline steps."""

    default_category = ErrorCategory.ORCHESTRATION


class HealthCheckTimeoutError(ReleaseError):
    """Readiness was never reported within the configured window."""

    def __init__(self, attempts: int, timeout_ms: int, **kwargs: Any):
        super().__init__(
            f"Health check failed after {attempts} attempts ({timeout_ms}ms timeout)",
            **kwargs,
        )
        self.attempts = attempts
        self.timeout_ms = timeout_ms


class VersionMismatchError(ReleaseError):
    """The running application reports a different version than requested."""

    def __init__(self, expected: str, actual: str | None, **kwargs: Any):
        super().__init__(f"Version mismatch: expected {expected}, got {actual}", **kwargs)
        self.expected = expected
        self.actual = actual


class DeploymentInProgressError(ReleaseError):
    """Another deployment holds the deployment lock."""

    default_retryable = True


class StepTimeoutError(ReleaseError):
    """A pipeline step exceeded its configured time limit."""

    def __init__(self, step: str, timeout_ms: int, **kwargs: Any):
        super().__init__(f"Step '{step}' timed out after {timeout_ms}ms", **kwargs)
        self.timeout_ms = timeout_ms
        self.context.step = step


# =============================================================================
# HELPERS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable. Unknown exceptions are not."""
    if isinstance(error, MailspineError):
        return error.retryable
    return False


def categorize_error(error: Exception) -> ErrorCategory:
    """Map any exception to an :class:`ErrorCategory`."""
    if isinstance(error, MailspineError):
        return error.category
    if isinstance(error, TimeoutError | ConnectionError):
        return ErrorCategory.NETWORK
    if isinstance(error, FileNotFoundError | PermissionError):
        return ErrorCategory.SOURCE
    return ErrorCategory.UNKNOWN


__all__ = [
    "ConfigError",
    "DatabaseConnectionError",
    "DatabaseError",
    "DeploymentInProgressError",
    "ErrorCategory",
    "ErrorContext",
    "HealthCheckTimeoutError",
    "LedgerError",
    "MailspineError",
    "MigrationExecutionError",
    "ReleaseError",
    "RollbackExecutionError",
    "RollbackScriptMissingError",
    "SourceError",
    "SourceUnavailableError",
    "StepTimeoutError",
    "TrackingUnavailableError",
    "VersionMismatchError",
    "categorize_error",
    "is_retryable",
]
