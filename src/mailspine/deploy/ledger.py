"""Deployment ledger - persistent record of every release attempt.

The ledger is the audit trail operators read after the fact: which
version went out, when, by whom, whether its health gate passed, and
whether it was rolled back. Each deployment is one row in
``deployment_logs``.

Architecture:

    .. code-block:: text

        record_start()          mark_terminal()  (guarded: WHERE status='started')
        ─────────────▶ started ─────────────────▶ completed | failed | rolled_back
                                 exactly once;
                                 a second call moves no row and returns Ok(False)

        Reads:  get()  history(limit)  current()  find_rollback_target(exclude_id)

The table is created by the platform's schema setup, not by the
orchestrator. :func:`deployment_logs_ddl` renders that DDL for the
configured dialect (used by ``mailspine db init-ledger`` and by tests).

Example:
    >>> ledger = DeploymentLedger(adapter)
    >>> ledger.record_start(deployment_id, config).unwrap()
    >>> ledger.mark_terminal(deployment_id, DeploymentStatus.COMPLETED,
    ...                      health_check_passed=True).unwrap()
    True
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from mailspine.core.adapters import DatabaseAdapter
from mailspine.core.dialect import Dialect
from mailspine.core.errors import LedgerError
from mailspine.core.logging import get_logger
from mailspine.core.result import Err, Result, try_result_with
from mailspine.core.timestamps import coerce_datetime, to_iso8601, utc_now

from .config import DeploymentConfig
from .results import DeploymentRecord, DeploymentStatus, DeploymentStep

logger = get_logger(__name__)

LEDGER_TABLE = "deployment_logs"

_COLUMNS = (
    "id, version, environment, status, commit_hash, build_time, deployed_by, "
    "deployment_notes, health_check_passed, rollback_version, created_at, "
    "completed_at, steps"
)


def deployment_logs_ddl(dialect: Dialect) -> list[str]:
    """``CREATE TABLE IF NOT EXISTS deployment_logs`` plus its index."""
    ts = dialect.timestamp_type()
    statuses = ", ".join(f"'{s.value}'" for s in DeploymentStatus)
    false = "FALSE" if dialect.boolean_type() == "BOOLEAN" else "0"
    return [
        f"""CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
            id VARCHAR(64) PRIMARY KEY,
            version VARCHAR(64) NOT NULL,
            environment VARCHAR(32) NOT NULL,
            status VARCHAR(20) NOT NULL CHECK (status IN ({statuses})),
            commit_hash VARCHAR(64),
            build_time VARCHAR(64),
            deployed_by VARCHAR(255),
            deployment_notes TEXT,
            health_check_passed {dialect.boolean_type()} NOT NULL DEFAULT {false},
            rollback_version VARCHAR(64),
            created_at {ts} NOT NULL,
            completed_at {ts},
            steps TEXT
        )""",
        f"CREATE INDEX IF NOT EXISTS idx_{LEDGER_TABLE}_status_created "
        f"ON {LEDGER_TABLE} (status, created_at)",
    ]


def _ledger_error(action: str):
    return lambda e: LedgerError(f"Failed to {action} in {LEDGER_TABLE}: {e}", cause=e)


class DeploymentLedger:
    """CRUD over ``deployment_logs``."""

    def __init__(self, adapter: DatabaseAdapter):
        self._adapter = adapter

    @property
    def _d(self) -> Dialect:
        return self._adapter.dialect

    def initialize(self) -> Result[None]:
        """Create the table if absent (schema setup and tests only)."""

        def _create() -> None:
            with self._adapter.transaction() as conn:
                for statement in deployment_logs_ddl(self._d):
                    conn.execute(statement)

        return try_result_with(_create, _ledger_error("create table"))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_start(self, deployment_id: str, config: DeploymentConfig) -> Result[None]:
        """Insert a ``started`` record for a new deployment."""

        def _insert() -> None:
            with self._adapter.transaction() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {LEDGER_TABLE}
                    (id, version, environment, status, commit_hash, build_time,
                     deployed_by, deployment_notes, health_check_passed, created_at)
                    VALUES ({self._d.placeholders(10)})
                    """,
                    (
                        deployment_id,
                        config.version,
                        config.environment,
                        DeploymentStatus.STARTED.value,
                        config.commit_hash,
                        config.build_time,
                        config.deployed_by,
                        config.notes,
                        False,
                        to_iso8601(utc_now()),
                    ),
                )
            logger.info("ledger.started", deployment_id=deployment_id, version=config.version)

        return try_result_with(_insert, _ledger_error("record deployment start"))

    def mark_terminal(
        self,
        deployment_id: str,
        status: DeploymentStatus,
        *,
        health_check_passed: bool,
        rollback_version: str | None = None,
        notes: str | None = None,
        steps: Iterable[DeploymentStep] = (),
    ) -> Result[bool]:
        """Move a ``started`` record to a terminal status.

        Returns ``Ok(False)`` when no row moved (unknown id, or the record
        is already terminal). ``notes=None`` keeps the stored notes.
        """
        if not status.is_terminal:
            return Err(LedgerError(f"{status.value} is not a terminal status"))

        p = self._d.placeholder
        steps_json = json.dumps([s.model_dump(mode="json") for s in steps])

        def _update() -> bool:
            with self._adapter.transaction() as conn:
                cur = conn.execute(
                    f"""
                    UPDATE {LEDGER_TABLE}
                    SET status = {p(0)},
                        health_check_passed = {p(1)},
                        rollback_version = {p(2)},
                        deployment_notes = COALESCE({p(3)}, deployment_notes),
                        completed_at = {p(4)},
                        steps = {p(5)}
                    WHERE id = {p(6)} AND status = {p(7)}
                    """,
                    (
                        status.value,
                        health_check_passed,
                        rollback_version,
                        notes,
                        to_iso8601(utc_now()),
                        steps_json,
                        deployment_id,
                        DeploymentStatus.STARTED.value,
                    ),
                )
                moved = cur.rowcount == 1
            if moved:
                logger.info("ledger.finalized", deployment_id=deployment_id, status=status.value)
            else:
                logger.warning(
                    "ledger.finalize_refused",
                    deployment_id=deployment_id,
                    status=status.value,
                )
            return moved

        return try_result_with(_update, _ledger_error("finalize deployment"))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, deployment_id: str) -> Result[DeploymentRecord | None]:
        sql = f"SELECT {_COLUMNS} FROM {LEDGER_TABLE} WHERE id = {self._d.placeholder(0)}"
        return try_result_with(
            lambda: _optional(self._adapter.query_one(sql, (deployment_id,))),
            _ledger_error("read deployment"),
        )

    def history(self, limit: int = 10) -> Result[list[DeploymentRecord]]:
        """Most recent deployments first."""
        sql = (
            f"SELECT {_COLUMNS} FROM {LEDGER_TABLE} "
            f"ORDER BY created_at DESC LIMIT {self._d.placeholder(0)}"
        )
        return try_result_with(
            lambda: [_row_to_record(row) for row in self._adapter.query(sql, (limit,))],
            _ledger_error("read history"),
        )

    def current(self) -> Result[DeploymentRecord | None]:
        """Newest record that is running or completed."""
        p = self._d.placeholder
        sql = (
            f"SELECT {_COLUMNS} FROM {LEDGER_TABLE} "
            f"WHERE status IN ({p(0)}, {p(1)}) "
            "ORDER BY created_at DESC LIMIT 1"
        )
        params = (DeploymentStatus.STARTED.value, DeploymentStatus.COMPLETED.value)
        return try_result_with(
            lambda: _optional(self._adapter.query_one(sql, params)),
            _ledger_error("read current deployment"),
        )

    def find_rollback_target(self, exclude_id: str) -> Result[DeploymentRecord | None]:
        """Most recent completed deployment whose health gate passed, other than ``exclude_id``."""
        p = self._d.placeholder
        sql = (
            f"SELECT {_COLUMNS} FROM {LEDGER_TABLE} "
            f"WHERE status = {p(0)} AND health_check_passed = {p(1)} AND id != {p(2)} "
            "ORDER BY created_at DESC LIMIT 1"
        )
        params = (DeploymentStatus.COMPLETED.value, True, exclude_id)
        return try_result_with(
            lambda: _optional(self._adapter.query_one(sql, params)),
            _ledger_error("find rollback target"),
        )


def _row_to_record(row: tuple) -> DeploymentRecord:
    return DeploymentRecord(
        id=row[0],
        version=row[1],
        environment=row[2],
        status=DeploymentStatus(row[3]),
        commit_hash=row[4],
        build_time=row[5],
        deployed_by=row[6],
        notes=row[7],
        health_check_passed=bool(row[8]),
        rollback_version=row[9],
        created_at=coerce_datetime(row[10]),
        completed_at=coerce_datetime(row[11]),
        steps=json.loads(row[12]) if row[12] else [],
    )


def _optional(row: tuple | None) -> DeploymentRecord | None:
    return _row_to_record(row) if row is not None else None


__all__ = ["LEDGER_TABLE", "DeploymentLedger", "deployment_logs_ddl"]
