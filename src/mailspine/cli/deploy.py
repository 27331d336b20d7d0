"""
CLI: ``mailspine deploy``: run a release and inspect the ledger.

Every ``run`` option can also come from ``MAILSPINE_DEPLOY_*``; options
given on the command line win.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.table import Table

from mailspine.cli.utils import (
    console,
    fail_on_error,
    make_context,
    output_json,
    print_dict,
    print_table,
    print_warnings,
    status_text,
)

app = typer.Typer(no_args_is_help=True)


@app.command()
def run(
    version: str | None = typer.Option(None, "--version", "-v", help="Version being deployed"),
    environment: str | None = typer.Option(None, "--environment", "-e"),
    commit_hash: str | None = typer.Option(None, "--commit"),
    build_time: str | None = typer.Option(None, "--build-time"),
    deployed_by: str | None = typer.Option(None, "--deployed-by"),
    notes: str | None = typer.Option(None, "--notes"),
    health_timeout_ms: int | None = typer.Option(None, "--health-timeout-ms"),
    health_interval_ms: int | None = typer.Option(None, "--health-interval-ms"),
    rollback_on_failure: bool | None = typer.Option(
        None, "--rollback-on-failure/--no-rollback-on-failure"
    ),
    use_lock: bool | None = typer.Option(None, "--lock/--no-lock"),
    database: str | None = typer.Option(None, "--database", "-d"),
    migrations_dir: Path | None = typer.Option(None, "--migrations-dir", "-m"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run the five-step release pipeline."""
    from pydantic import ValidationError

    from mailspine.deploy import DeploymentConfig
    from mailspine.ops.deployments import deploy

    overrides: dict[str, Any] = {
        "version": version,
        "environment": environment,
        "commit_hash": commit_hash,
        "build_time": build_time,
        "deployed_by": deployed_by,
        "notes": notes,
        "health_check_timeout_ms": health_timeout_ms,
        "health_check_interval_ms": health_interval_ms,
        "rollback_on_failure": rollback_on_failure,
        "use_lock": use_lock,
    }
    try:
        config = DeploymentConfig.from_env(**{k: v for k, v in overrides.items() if v is not None})
    except (ValidationError, ValueError) as exc:
        console.print(f"[bold red]Invalid deployment configuration[/bold red]: {exc}")
        raise typer.Exit(code=2) from None

    ctx = make_context(database, migrations_dir)
    result = deploy(ctx, config)
    if json_out:
        output_json(result)
    else:
        fail_on_error(result)
        _print_deployment(result.data)
    if not result.success or not result.data.success:
        raise typer.Exit(code=1)


def _print_deployment(data) -> None:
    table = Table(title=f"Deployment {data.deployment_id[:12]} ({data.version})", pad_edge=False)
    table.add_column("step")
    table.add_column("status")
    table.add_column("ms", justify="right")
    table.add_column("error", overflow="fold")
    for step in data.steps:
        table.add_row(
            step.name,
            status_text(step.status.value),
            "" if step.duration_ms is None else str(step.duration_ms),
            step.error or "",
        )
    console.print(table)
    console.print(
        f"status: {status_text(data.status.value)}  "
        f"health_check_passed: {data.health_check_passed}  "
        f"rollback_performed: {data.rollback_performed}  "
        f"duration: {data.duration_ms}ms"
    )
    if data.error:
        console.print(f"[red]{data.error}[/red]")


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of deployments"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show recent deployments, newest first."""
    from mailspine.ops.deployments import get_deployment_history

    ctx = make_context(database)
    result = get_deployment_history(ctx, limit=limit)
    if json_out:
        output_json(result)
        if not result.success:
            raise typer.Exit(code=1)
        return

    fail_on_error(result)
    if not result.data:
        console.print("[dim]No deployments recorded.[/dim]")
        return
    print_table(
        result.data,
        title="Deployments",
        columns=[
            "id",
            "version",
            "environment",
            "status",
            "health_check_passed",
            "rollback_version",
            "created_at",
        ],
    )


@app.command()
def current(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the active deployment with live health."""
    from mailspine.ops.deployments import get_current_deployment_status

    ctx = make_context(database)
    result = get_current_deployment_status(ctx)
    if json_out:
        output_json(result)
        if not result.success:
            raise typer.Exit(code=1)
        return

    fail_on_error(result)
    print_warnings(result)
    if result.data is None:
        console.print("[dim]No active deployment.[/dim]")
        return
    record = result.data.record
    print_dict(
        {
            "id": record.id,
            "version": record.version,
            "environment": record.environment,
            "status": status_text(record.status.value),
            "created_at": record.created_at,
            "health": result.data.current_health.status if result.data.current_health else "unknown",
            "running_version": result.data.running_version,
            "uptime_s": result.data.uptime_s,
        },
        title="Current deployment",
    )
