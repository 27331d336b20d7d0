"""Release pipeline: orchestrator, ledger, rollback and lock.

Modules
-------
config        DeploymentConfig (pydantic, ``from_env()``)
results       DeploymentStep / DeploymentResult / DeploymentRecord models
ledger        ``deployment_logs`` persistence
lock          ``deployment_locks`` advisory lock
rollback      RollbackCoordinator
orchestrator  DeploymentOrchestrator (the five-step pipeline)
"""

from .config import DeploymentConfig
from .ledger import LEDGER_TABLE, DeploymentLedger, deployment_logs_ddl
from .lock import LOCK_TABLE, DeploymentLock
from .orchestrator import DEFAULT_CRITICAL_SERVICES, DeploymentOrchestrator, failure_notes
from .results import (
    APPLICATION_STARTUP,
    DATABASE_MIGRATIONS,
    DEPLOYMENT_VERIFICATION,
    PIPELINE_STEPS,
    POST_DEPLOYMENT_HEALTH_CHECK,
    PRE_DEPLOYMENT_HEALTH_CHECK,
    CurrentDeployment,
    DeploymentRecord,
    DeploymentResult,
    DeploymentStatus,
    DeploymentStep,
    StepStatus,
)
from .rollback import RollbackCoordinator

__all__ = [
    "APPLICATION_STARTUP",
    "DATABASE_MIGRATIONS",
    "DEFAULT_CRITICAL_SERVICES",
    "DEPLOYMENT_VERIFICATION",
    "LEDGER_TABLE",
    "LOCK_TABLE",
    "PIPELINE_STEPS",
    "POST_DEPLOYMENT_HEALTH_CHECK",
    "PRE_DEPLOYMENT_HEALTH_CHECK",
    "CurrentDeployment",
    "DeploymentConfig",
    "DeploymentLedger",
    "DeploymentLock",
    "DeploymentOrchestrator",
    "DeploymentRecord",
    "DeploymentResult",
    "DeploymentStatus",
    "DeploymentStep",
    "RollbackCoordinator",
    "StepStatus",
    "deployment_logs_ddl",
    "failure_notes",
]
