"""
CLI utility helpers: output formatting and context construction.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from mailspine.core.logging import configure_logging
from mailspine.core.settings import MailspineSettings
from mailspine.ops.context import OperationContext
from mailspine.ops.result import OperationResult

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLES = {
    "completed": "green",
    "failed": "red",
    "rolled_back": "yellow",
    "started": "cyan",
    "skipped": "dim",
    "pending": "dim",
    "running": "cyan",
    "ok": "green",
    "mismatch": "red",
    "missing": "yellow",
}


# ── Context helper ───────────────────────────────────────────────────────


def make_context(
    database: str | None = None,
    migrations_dir: Path | None = None,
    *,
    dry_run: bool = False,
) -> OperationContext:
    """Create an ``OperationContext`` for CLI commands.

    ``--database`` / ``--migrations-dir`` override ``MAILSPINE_DATABASE_URL`` /
    ``MAILSPINE_MIGRATIONS_DIR``. Logs go to stderr so stdout carries only command output.
    """
    overrides: dict[str, Any] = {}
    if database:
        overrides["database_url"] = database
    if migrations_dir:
        overrides["migrations_dir"] = migrations_dir
    settings = MailspineSettings(**overrides)
    configure_logging(level=settings.log_level, json_format=settings.log_json, stream="stderr")
    return OperationContext.from_settings(settings, caller="cli", dry_run=dry_run)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def fail_on_error(result: OperationResult) -> None:
    """Print the operation error and exit 1 if the operation failed."""
    if result.success:
        return
    err = result.error
    msg = err.message if err else "Unknown error"
    code = err.code if err else "ERROR"
    err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
    raise typer.Exit(code=1)


def print_warnings(result: OperationResult) -> None:
    for warning in result.warnings:
        err_console.print(f"[yellow]warning[/yellow]: {warning}")


def output_json(result: OperationResult) -> None:
    console.print_json(json.dumps(result.to_dict(), default=str))


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult`` to the terminal."""
    if as_json:
        output_json(result)
        if not result.success:
            raise typer.Exit(code=1)
        return

    fail_on_error(result)
    print_warnings(result)
    data = result.data

    if data is None:
        console.print(f"[green]{title or 'Done'}[/green]")
    elif isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        print_table(data, title=title)
    else:
        print_dict(_to_dict(data), title=title)


def status_text(value: Any) -> str:
    text = str(value)
    style = _STATUS_STYLES.get(text)
    return f"[{style}]{text}[/{style}]" if style else text


def print_table(items: list, *, title: str = "", columns: list[str] | None = None) -> None:
    """Render a list of models/dicts as a Rich table."""
    first = _to_dict(items[0])
    cols = columns or list(first)
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in cols:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        cells = []
        for col in cols:
            value = d.get(col, "")
            cells.append(status_text(value) if col in ("status", "state") else str(value))
        table.add_row(*cells)
    console.print(table)


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
