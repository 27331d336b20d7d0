"""Tests for the migration operations and the OperationResult envelope."""

from __future__ import annotations

import pytest

from mailspine.core.errors import DatabaseConnectionError, ErrorCategory, SourceUnavailableError
from mailspine.migrations import NO_MIGRATIONS_TO_ROLLBACK
from mailspine.ops import (
    OperationContext,
    OperationResult,
    get_migration_status,
    rollback_last_migration,
    run_migrations,
    verify_migrations,
)


@pytest.fixture()
def ctx(adapter, migrations_dir, health):
    return OperationContext(adapter=adapter, migrations_dir=migrations_dir, health=health)


@pytest.fixture()
def dry_ctx(adapter, migrations_dir):
    return OperationContext(adapter=adapter, migrations_dir=migrations_dir, dry_run=True)


class TestOperationResult:
    def test_ok_to_dict(self):
        d = OperationResult.ok([1, 2], warnings=["careful"], metadata={"k": "v"}).to_dict()
        assert d == {
            "success": True,
            "data": [1, 2],
            "warnings": ["careful"],
            "metadata": {"k": "v"},
        }

    def test_from_typed_error(self):
        error = SourceUnavailableError("Migrations directory not found: /nope")
        result = OperationResult.from_error("UNAVAILABLE", error)

        assert result.success is False
        assert result.data is None
        d = result.to_dict()
        assert d["error"]["code"] == "UNAVAILABLE"
        assert d["error"]["message"] == "Migrations directory not found: /nope"
        assert d["error"]["category"] == ErrorCategory.SOURCE.value

    def test_from_plain_exception(self):
        result = OperationResult.from_error("INTERNAL", RuntimeError("boom"))
        assert result.error.message == "boom"
        assert result.error.category == ErrorCategory.UNKNOWN
        assert result.error.retryable is False
        assert result.error.details == {}

    @pytest.mark.parametrize(
        ("error", "category"),
        [
            (TimeoutError("slow"), ErrorCategory.NETWORK),
            (FileNotFoundError("gone"), ErrorCategory.SOURCE),
        ],
    )
    def test_plain_exceptions_are_categorized(self, error, category):
        d = OperationResult.from_error("UNAVAILABLE", error).to_dict()
        assert d["error"]["category"] == category.value

    def test_retryable_typed_error(self):
        result = OperationResult.from_error("UNAVAILABLE", DatabaseConnectionError("down"))
        assert result.error.retryable is True
        assert result.error.category == ErrorCategory.DATABASE


class TestRunMigrations:
    def test_applies_pending(self, ctx, write_migration):
        write_migration("001_contacts.sql", "CREATE TABLE contacts (id INTEGER);")

        result = run_migrations(ctx)

        assert result.success is True
        assert result.data.success is True
        assert result.data.migrations_run == ["001_contacts.sql"]
        assert result.metadata["request_id"] == ctx.request_id

    def test_failed_migration_is_in_payload(self, ctx, write_migration):
        write_migration("001_broken.sql", "INSERT INTO nowhere VALUES (1);")

        result = run_migrations(ctx)

        assert result.success is True
        assert result.data.success is False
        assert result.data.errors[0].startswith("001_broken.sql: ")

    def test_dry_run_on_fresh_database(self, dry_ctx, write_migration, tables):
        write_migration("002_lists.sql", "CREATE TABLE lists (id INTEGER);")
        write_migration("001_contacts.sql", "CREATE TABLE contacts (id INTEGER);")

        result = run_migrations(dry_ctx)

        assert result.success is True
        assert result.warnings == ["would apply 001_contacts.sql", "would apply 002_lists.sql"]
        assert tables() == set()

    def test_dry_run_lists_only_pending(self, ctx, dry_ctx, write_migration):
        write_migration("001_contacts.sql", "CREATE TABLE contacts (id INTEGER);")
        run_migrations(ctx)
        write_migration("002_lists.sql", "CREATE TABLE lists (id INTEGER);")

        assert run_migrations(dry_ctx).warnings == ["would apply 002_lists.sql"]

    def test_dry_run_missing_directory(self, adapter, tmp_path):
        ctx = OperationContext(adapter=adapter, migrations_dir=tmp_path / "missing", dry_run=True)
        result = run_migrations(ctx)
        assert result.success is False
        assert result.error.code == "UNAVAILABLE"


class TestMigrationStatus:
    def test_status(self, ctx, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        run_migrations(ctx)
        write_migration("002_b.sql", "CREATE TABLE b (id INTEGER);")

        status = get_migration_status(ctx).data

        assert status.total == 2
        assert status.executed == 1
        assert status.pending == ["002_b.sql"]

    def test_missing_directory(self, adapter, tmp_path):
        ctx = OperationContext(adapter=adapter, migrations_dir=tmp_path / "missing")
        result = get_migration_status(ctx)
        assert result.success is False
        assert result.error.code == "UNAVAILABLE"
        assert result.error.category == ErrorCategory.SOURCE


class TestRollbackLastMigration:
    def test_rolls_back(self, ctx, write_migration, tables):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);", rollback="DROP TABLE a;")
        run_migrations(ctx)

        result = rollback_last_migration(ctx)

        assert result.success is True
        assert result.data.rolled_back == "001_a.sql"
        assert "a" not in tables()

    def test_nothing_to_roll_back_on_fresh_database(self, ctx):
        result = rollback_last_migration(ctx)
        assert result.success is True
        assert result.data.success is False
        assert result.data.error == NO_MIGRATIONS_TO_ROLLBACK

    def test_dry_run_reports_target(self, ctx, dry_ctx, write_migration, tables):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);", rollback="DROP TABLE a;")
        run_migrations(ctx)

        result = rollback_last_migration(dry_ctx)

        assert result.data.rolled_back == "001_a.sql"
        assert result.warnings == ["would roll back 001_a.sql"]
        assert "a" in tables()

    def test_dry_run_on_fresh_database(self, dry_ctx, tables):
        result = rollback_last_migration(dry_ctx)
        assert result.data.error == NO_MIGRATIONS_TO_ROLLBACK
        assert tables() == set()


class TestVerifyMigrations:
    def test_clean(self, ctx, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        run_migrations(ctx)

        result = verify_migrations(ctx)

        assert result.success is True
        assert result.data.clean
        assert result.warnings == []

    def test_drift_becomes_warnings(self, ctx, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        run_migrations(ctx)
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER, name TEXT);")

        result = verify_migrations(ctx)

        assert result.success is True
        assert not result.data.clean
        assert result.warnings == ["001_a.sql: mismatch"]
