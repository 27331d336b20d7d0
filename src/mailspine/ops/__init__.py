"""
Operations layer - the programmatic entry points.

Every function takes an :class:`OperationContext` first and returns an
:class:`OperationResult`. The CLI is a thin shell over these.
"""

from mailspine.ops.context import OperationContext, build_health_provider
from mailspine.ops.deployments import (
    deploy,
    get_current_deployment_status,
    get_deployment_history,
    initialize_ledger,
)
from mailspine.ops.migrations import (
    get_migration_status,
    rollback_last_migration,
    run_migrations,
    verify_migrations,
)
from mailspine.ops.result import OperationError, OperationResult, start_timer

__all__ = [
    "OperationContext",
    "OperationError",
    "OperationResult",
    "build_health_provider",
    "deploy",
    "get_current_deployment_status",
    "get_deployment_history",
    "get_migration_status",
    "initialize_ledger",
    "rollback_last_migration",
    "run_migrations",
    "start_timer",
    "verify_migrations",
]
