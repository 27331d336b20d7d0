"""Split a migration body into executable statements.

Drivers execute one statement per call, so a migration body is cut at
every ``;`` that sits outside a string, a quoted identifier, a comment or a
PostgreSQL dollar-quoted body. Comments are dropped. ``CREATE TRIGGER``
bodies keep their inner semicolons until the closing ``END;``.
"""

from __future__ import annotations

import re

_DOLLAR_TAG = re.compile(r"\$[A-Za-z_]?[A-Za-z0-9_]*\$")
_TRIGGER = re.compile(r"^CREATE\s+(?:TEMP\s+|TEMPORARY\s+)?TRIGGER\b", re.IGNORECASE)
_TRIGGER_END = re.compile(r"\bEND\s*$", re.IGNORECASE)


def split_statements(sql: str) -> list[str]:
    """Split a SQL script into individual statements.

    Each statement keeps its terminating ``;``. A trailing statement without
    a terminator is kept. Fragments holding only comments or whitespace are
    dropped.

    Examples:
        >>> split_statements("CREATE TABLE a (id INT); -- root\\nCREATE TABLE b (id INT);")
        ['CREATE TABLE a (id INT);', 'CREATE TABLE b (id INT);']
        >>> split_statements("INSERT INTO t VALUES ('a;b');")
        ["INSERT INTO t VALUES ('a;b');"]
    """
    statements: list[str] = []
    current: list[str] = []
    i, n = 0, len(sql)

    def flush(terminator: str) -> None:
        stmt = "".join(current).strip()
        if stmt:
            statements.append(stmt + terminator)
        current.clear()

    while i < n:
        ch = sql[i]

        if ch == "-" and sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end == -1 else end
            continue

        if ch == "/" and sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end == -1 else end + 2
            current.append(" ")
            continue

        if ch in ("'", '"'):
            end = _quoted_end(sql, i, ch)
            current.append(sql[i:end])
            i = end
            continue

        if ch == "$":
            tag = _DOLLAR_TAG.match(sql, i)
            if tag:
                close = sql.find(tag.group(), tag.end())
                end = n if close == -1 else close + len(tag.group())
                current.append(sql[i:end])
                i = end
                continue

        if ch == ";":
            pending = "".join(current).strip()
            if _TRIGGER.match(pending) and not _TRIGGER_END.search(pending):
                current.append(ch)
            else:
                flush(";")
            i += 1
            continue

        current.append(ch)
        i += 1

    flush("")
    return statements


def _quoted_end(sql: str, start: int, quote: str) -> int:
    """Index just past the quote closing the literal opened at ``start``."""
    i = start + 1
    while i < len(sql):
        if sql[i] == quote:
            if sql.startswith(quote * 2, i):
                i += 2
                continue
            return i + 1
        i += 1
    return len(sql)


__all__ = ["split_statements"]
