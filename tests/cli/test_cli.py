"""CLI tests via Typer's CliRunner against a throwaway SQLite file."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from mailspine import __version__
from mailspine.cli.app import app

cli = CliRunner()


@pytest.fixture(autouse=True)
def quiet_env(tmp_path, monkeypatch):
    """Isolate from the developer's environment and keep stderr empty."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MAILSPINE_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("MAILSPINE_LOG_JSON", "true")
    monkeypatch.delenv("MAILSPINE_DEPLOY_VERSION", raising=False)
    monkeypatch.delenv("MAILSPINE_REDIS_URL", raising=False)


@pytest.fixture()
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _invoke(*args):
    return cli.invoke(app, list(args))


def _json(result):
    return json.loads(result.stdout)


class TestRoot:
    def test_version(self):
        result = _invoke("--version")
        assert result.exit_code == 0
        assert result.stdout.strip() == f"mailspine {__version__}"

    @pytest.mark.parametrize(
        "group,commands",
        [
            ("db", ["migrate", "status", "rollback", "verify", "init-ledger"]),
            ("deploy", ["run", "history", "current"]),
        ],
    )
    def test_group_help(self, group, commands):
        result = _invoke(group, "--help")
        assert result.exit_code == 0
        for command in commands:
            assert command in result.stdout


class TestDbCommands:
    def test_migrate_json(self, db_url, migrations_dir, write_migration):
        write_migration("001_contacts.sql", "CREATE TABLE contacts (id INTEGER);")

        result = _invoke("db", "migrate", "-d", db_url, "-m", str(migrations_dir), "--json")

        assert result.exit_code == 0, result.output
        payload = _json(result)
        assert payload["success"] is True
        assert payload["data"]["migrations_run"] == ["001_contacts.sql"]

    def test_migrate_failure_exits_1(self, db_url, migrations_dir, write_migration):
        write_migration("001_broken.sql", "INSERT INTO nowhere VALUES (1);")

        result = _invoke("db", "migrate", "-d", db_url, "-m", str(migrations_dir))

        assert result.exit_code == 1
        assert "001_broken.sql" in result.stdout

    def test_status(self, db_url, migrations_dir, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        _invoke("db", "migrate", "-d", db_url, "-m", str(migrations_dir))
        write_migration("002_b.sql", "CREATE TABLE b (id INTEGER);")

        result = _invoke("db", "status", "-d", db_url, "-m", str(migrations_dir), "--json")

        assert result.exit_code == 0, result.output
        data = _json(result)["data"]
        assert data["executed"] == 1
        assert data["pending"] == ["002_b.sql"]

    def test_verify_detects_drift(self, db_url, migrations_dir, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);")
        _invoke("db", "migrate", "-d", db_url, "-m", str(migrations_dir))
        assert _invoke("db", "verify", "-d", db_url, "-m", str(migrations_dir)).exit_code == 0

        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER, name TEXT);")
        result = _invoke("db", "verify", "-d", db_url, "-m", str(migrations_dir))

        assert result.exit_code == 1
        assert "mismatch" in result.stdout

    def test_rollback(self, db_url, migrations_dir, write_migration):
        write_migration("001_a.sql", "CREATE TABLE a (id INTEGER);", rollback="DROP TABLE a;")
        _invoke("db", "migrate", "-d", db_url, "-m", str(migrations_dir))

        result = _invoke("db", "rollback", "-d", db_url, "-m", str(migrations_dir), "--json")

        assert result.exit_code == 0, result.output
        assert _json(result)["data"]["rolled_back"] == "001_a.sql"

    def test_rollback_with_nothing_applied_exits_1(self, db_url, migrations_dir):
        result = _invoke("db", "rollback", "-d", db_url, "-m", str(migrations_dir))
        assert result.exit_code == 1
        assert "No migrations to rollback" in result.stdout

    def test_missing_migrations_dir(self, db_url, tmp_path):
        result = _invoke("db", "status", "-d", db_url, "-m", str(tmp_path / "nope"))
        assert result.exit_code == 1


class TestDeployCommands:
    def test_run_and_history(self, db_url, migrations_dir, write_migration, monkeypatch):
        monkeypatch.setenv("MAILSPINE_APP_VERSION", "2.0.0")
        write_migration("001_contacts.sql", "CREATE TABLE contacts (id INTEGER);")
        assert _invoke("db", "init-ledger", "-d", db_url).exit_code == 0

        run = _invoke(
            "deploy", "run", "-v", "2.0.0", "-d", db_url, "-m", str(migrations_dir), "--json"
        )

        assert run.exit_code == 0, run.output
        data = _json(run)["data"]
        assert data["status"] == "completed"
        assert data["health_check_passed"] is True

        history = _invoke("deploy", "history", "-d", db_url, "--json")
        assert history.exit_code == 0, history.output
        (record,) = _json(history)["data"]
        assert record["version"] == "2.0.0"
        assert record["status"] == "completed"

    def test_version_mismatch_is_reported(self, db_url, migrations_dir, monkeypatch):
        monkeypatch.setenv("MAILSPINE_APP_VERSION", "1.9.0")
        _invoke("db", "init-ledger", "-d", db_url)

        result = _invoke("deploy", "run", "-v", "2.0.0", "-d", db_url, "-m", str(migrations_dir))

        assert result.exit_code == 0, result.output
        assert "failed" in result.stdout
        assert "completed" in result.stdout
        assert "Version mismatch: expected 2.0.0, got 1.9.0" in result.stdout

    @pytest.mark.parametrize("args", [[], ["-v", "  "]])
    def test_invalid_config_exits_2(self, db_url, args):
        result = _invoke("deploy", "run", *args, "-d", db_url)
        assert result.exit_code == 2
        assert "Invalid deployment configuration" in result.stdout

    def test_current_empty(self, db_url):
        _invoke("db", "init-ledger", "-d", db_url)
        result = _invoke("deploy", "current", "-d", db_url)
        assert result.exit_code == 0, result.output
        assert "No active deployment" in result.stdout

    def test_history_without_ledger_exits_1(self, db_url):
        assert _invoke("deploy", "history", "-d", db_url).exit_code == 1
