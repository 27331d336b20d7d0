"""Tests for MigrationRunner: apply, status, checksum verification, rollback."""

from __future__ import annotations

import pytest

from mailspine.core.errors import SourceUnavailableError
from mailspine.core.hashing import compute_checksum
from mailspine.core.result import Err, Ok
from mailspine.migrations import (
    NO_MIGRATIONS_TO_ROLLBACK,
    ChecksumState,
    MigrationRunner,
)
from mailspine.migrations.models import MigrationDefinition

CONTACTS = """\
CREATE TABLE contacts (
    id INTEGER PRIMARY KEY,
    email TEXT NOT NULL
);
"""


def _records(adapter):
    return adapter.query(
        "SELECT filename, checksum, success FROM schema_migrations ORDER BY id"
    )


class TestInitializeTracking:
    def test_creates_table_idempotently(self, runner, tables):
        assert runner.initialize_tracking() == Ok(None)
        assert runner.initialize_tracking() == Ok(None)
        assert "schema_migrations" in tables()

    def test_ddl_uses_dialect(self, runner):
        ddl = runner.tracking_ddl()[0]
        assert "INTEGER PRIMARY KEY AUTOINCREMENT" in ddl
        assert "filename VARCHAR(255) NOT NULL UNIQUE" in ddl


class TestRunPending:
    def test_no_pending(self, runner):
        result = runner.run_pending()
        assert result.success is True
        assert result.migrations_run == []
        assert result.errors == []

    def test_applies_in_filename_order(self, runner, adapter, write_migration):
        write_migration("002_contacts.sql", "CREATE TABLE contacts (tenant_id INTEGER REFERENCES tenants(id));")
        write_migration("001_tenants.sql", "CREATE TABLE tenants (id INTEGER PRIMARY KEY);")

        result = runner.run_pending()

        assert result.success is True
        assert result.migrations_run == ["001_tenants.sql", "002_contacts.sql"]
        assert [r[0] for r in _records(adapter)] == ["001_tenants.sql", "002_contacts.sql"]

    def test_records_checksum_of_body(self, runner, adapter, write_migration):
        write_migration("001_contacts.sql", CONTACTS)
        runner.run_pending()
        (record,) = _records(adapter)
        assert record == ("001_contacts.sql", compute_checksum(CONTACTS), 1)

    def test_idempotent(self, runner, adapter, write_migration):
        write_migration("001_contacts.sql", CONTACTS)
        runner.run_pending()

        second = runner.run_pending()

        assert second.success is True
        assert second.migrations_run == []
        assert len(_records(adapter)) == 1

    def test_statements_sharing_a_line(self, runner, write_migration, tables):
        write_migration(
            "001_tenants.sql",
            "CREATE TABLE tenants (id INTEGER); -- tenant root\n"
            "CREATE TABLE contacts (id INTEGER); CREATE TABLE lists (id INTEGER);\n",
        )

        result = runner.run_pending()

        assert result.success is True, result.errors
        assert {"tenants", "contacts", "lists"} <= tables()

    def test_applies_only_new_files(self, runner, write_migration):
        write_migration("001_contacts.sql", CONTACTS)
        runner.run_pending()
        write_migration("002_lists.sql", "CREATE TABLE lists (id INTEGER);")

        assert runner.run_pending().migrations_run == ["002_lists.sql"]

    def test_failure_halts_batch_and_is_atomic(self, runner, adapter, write_migration, tables):
        write_migration("001_tenants.sql", "CREATE TABLE tenants (id INTEGER);")
        write_migration(
            "002_broken.sql",
            "CREATE TABLE half_done (id INTEGER);\nINSERT INTO no_such_table VALUES (1);\n",
        )
        write_migration("003_later.sql", "CREATE TABLE later (id INTEGER);")

        result = runner.run_pending()

        assert result.success is False
        assert result.migrations_run == ["001_tenants.sql"]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("002_broken.sql: ")
        assert "no_such_table" in result.errors[0]
        assert "half_done" not in tables()
        assert "later" not in tables()
        assert _records(adapter)[-1][0] == "002_broken.sql"
        assert _records(adapter)[-1][2] == 0

    def test_retry_replaces_failed_record(self, runner, adapter, write_migration):
        write_migration("001_lists.sql", "INSERT INTO lists VALUES (1);")
        assert runner.run_pending().success is False

        write_migration("001_lists.sql", "CREATE TABLE lists (id INTEGER);")
        result = runner.run_pending()

        assert result.success is True
        assert result.migrations_run == ["001_lists.sql"]
        assert [(r[0], r[2]) for r in _records(adapter)] == [("001_lists.sql", 1)]

    def test_missing_directory_is_single_error(self, adapter, tmp_path):
        result = MigrationRunner(adapter, tmp_path / "missing").run_pending()
        assert result.success is False
        assert len(result.errors) == 1
        assert "Migrations directory not found" in result.errors[0]


class TestStatus:
    def test_counts_and_pending(self, runner, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        runner.run_pending()
        write_migration("002_b.sql", "CREATE TABLE b (id INTEGER);")
        write_migration("003_c.sql", "CREATE TABLE c (id INTEGER);")

        status = runner.status().unwrap()

        assert status.total == 3
        assert status.executed == 1
        assert status.pending == ["002_b.sql", "003_c.sql"]
        assert status.last_migration.filename == "001_a.sql"

    def test_pending_ignores_orphan_records(self, runner, migrations_dir, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        runner.run_pending()
        (migrations_dir / "001_a.sql").unlink()
        write_migration("002_b.sql", "CREATE TABLE b (id INTEGER);")

        status = runner.status().unwrap()

        assert status.total == 1
        assert status.executed == 1
        assert status.pending == ["002_b.sql"]

    def test_fresh_database(self, runner):
        status = runner.status().unwrap()
        assert status.total == 0
        assert status.last_migration is None


class TestVerifyChecksums:
    def test_clean(self, runner, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        runner.run_pending()
        report = runner.verify_checksums().unwrap()
        assert report.clean
        assert report.entries[0].state == ChecksumState.OK

    def test_detects_mismatch_and_missing(self, runner, migrations_dir, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        write_migration("002_b.sql", "CREATE TABLE b (id INTEGER);")
        runner.run_pending()
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER, name TEXT);")
        (migrations_dir / "002_b.sql").unlink()

        report = runner.verify_checksums().unwrap()

        assert not report.clean
        states = {e.filename: e.state for e in report.drifted}
        assert states == {"001_a.sql": ChecksumState.MISMATCH, "002_b.sql": ChecksumState.MISSING}

    def test_failed_records_are_not_verified(self, runner, write_migration):
        write_migration("001_a.sql", "INSERT INTO nowhere VALUES (1);")
        runner.run_pending()
        assert runner.verify_checksums().unwrap().entries == []

    def test_fresh_database_is_clean(self, runner):
        report = runner.verify_checksums().unwrap()
        assert report.entries == []
        assert report.clean

    def test_missing_directory(self, adapter, tmp_path):
        result = MigrationRunner(adapter, tmp_path / "missing").verify_checksums()
        assert isinstance(result, Err)
        assert isinstance(result.error, SourceUnavailableError)


class TestRollbackLast:
    def test_reverses_latest_migration(self, runner, adapter, write_migration, tables):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);", rollback="DROP TABLE a;")
        write_migration("002_b.sql", "CREATE TABLE b (id INTEGER);", rollback="DROP TABLE b;")
        runner.run_pending()

        outcome = runner.rollback_last()

        assert outcome.success is True
        assert outcome.rolled_back == "002_b.sql"
        assert "b" not in tables()
        assert "a" in tables()
        assert [r[0] for r in _records(adapter)] == ["001_a.sql"]
        assert [d.filename for d in runner.store.get_pending().unwrap()] == ["002_b.sql"]

    def test_reapply_after_rollback(self, runner, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);", rollback="DROP TABLE a;")
        runner.run_pending()
        runner.rollback_last()
        assert runner.run_pending().migrations_run == ["001_a.sql"]

    def test_nothing_to_roll_back(self, runner):
        runner.initialize_tracking().unwrap()
        outcome = runner.rollback_last()
        assert outcome.success is False
        assert outcome.error == NO_MIGRATIONS_TO_ROLLBACK

    def test_missing_script(self, runner, adapter, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        runner.run_pending()

        outcome = runner.rollback_last()

        assert outcome.success is False
        assert outcome.error == "Rollback script 001_a.rollback.sql not found for 001_a.sql"
        assert len(_records(adapter)) == 1

    def test_runs_rollback_body_from_definition(
        self, runner, migrations_dir, write_migration, tables, monkeypatch
    ):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        runner.run_pending()
        loaded = MigrationDefinition(
            filename="001_a.sql", body="", checksum="", rollback_body="DROP TABLE a;"
        )
        monkeypatch.setattr(runner.store, "get_definition", lambda filename: Ok(loaded))

        outcome = runner.rollback_last()

        assert outcome.success is True
        assert "a" not in tables()
        assert not (migrations_dir / "001_a.rollback.sql").exists()

    def test_forward_file_gone(self, runner, migrations_dir, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);", rollback="DROP TABLE a;")
        runner.run_pending()
        (migrations_dir / "001_a.sql").unlink()

        outcome = runner.rollback_last()

        assert outcome.success is False
        assert outcome.error == "Rollback script 001_a.rollback.sql not found for 001_a.sql"

    def test_failing_script_keeps_record(self, runner, adapter, write_migration, tables):
        write_migration(
            "001_a.sql",
            "CREATE TABLE a (id INTEGER);",
            rollback="DROP TABLE a;\nDROP TABLE not_there;\n",
        )
        runner.run_pending()

        outcome = runner.rollback_last()

        assert outcome.success is False
        assert outcome.error.startswith("Rollback of 001_a.sql failed: ")
        assert "a" in tables()
        assert len(_records(adapter)) == 1

    @pytest.mark.parametrize("applied", [1, 3])
    def test_rolls_back_one_at_a_time(self, runner, write_migration, applied):
        for i in range(1, applied + 1):
            write_migration(f"00{i}_t{i}.sql", f"CREATE TABLE t{i} (id INTEGER);", rollback=f"DROP TABLE t{i};")
        runner.run_pending()
        for i in range(applied, 0, -1):
            assert runner.rollback_last().rolled_back == f"00{i}_t{i}.sql"
        assert runner.rollback_last().error == NO_MIGRATIONS_TO_ROLLBACK
