"""Tests for SQL dialects."""

from __future__ import annotations

import pytest

from mailspine.core.dialect import Dialect, PostgreSQLDialect, SQLiteDialect, get_dialect


class TestSQLiteDialect:
    def test_placeholders(self):
        d = SQLiteDialect()
        assert d.placeholder(0) == "?"
        assert d.placeholders(3) == "?, ?, ?"

    def test_types(self):
        d = SQLiteDialect()
        assert d.auto_increment() == "INTEGER PRIMARY KEY AUTOINCREMENT"
        assert d.timestamp_type() == "TEXT"
        assert d.boolean_type() == "INTEGER"


class TestPostgreSQLDialect:
    def test_placeholders(self):
        d = PostgreSQLDialect()
        assert d.placeholder(5) == "%s"
        assert d.placeholders(2) == "%s, %s"

    def test_types(self):
        d = PostgreSQLDialect()
        assert d.auto_increment() == "SERIAL PRIMARY KEY"
        assert d.boolean_type() == "BOOLEAN"
        assert "current_schema()" in d.table_exists_query()


class TestGetDialect:
    @pytest.mark.parametrize("name", ["sqlite", "SQLite", "postgresql", "postgres"])
    def test_known(self, name):
        assert isinstance(get_dialect(name), Dialect)

    def test_postgres_alias(self):
        assert get_dialect("postgres").name == "postgresql"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown dialect 'mysql'"):
            get_dialect("mysql")
