"""
CLI: ``mailspine db``: schema migration commands.
"""

from __future__ import annotations

from pathlib import Path

import typer

from mailspine.cli.utils import (
    console,
    fail_on_error,
    make_context,
    output_json,
    output_result,
    print_table,
    print_warnings,
)

app = typer.Typer(no_args_is_help=True)

DatabaseOpt = typer.Option(
    None, "--database", "-d", help="Database URL (overrides MAILSPINE_DATABASE_URL)"
)
MigrationsOpt = typer.Option(None, "--migrations-dir", "-m", help="Migrations directory")
JsonOpt = typer.Option(False, "--json", help="JSON output")


@app.command()
def migrate(
    database: str | None = DatabaseOpt,
    migrations_dir: Path | None = MigrationsOpt,
    dry_run: bool = typer.Option(
        False, "--dry-run", help="List pending migrations without applying"
    ),
    json_out: bool = JsonOpt,
) -> None:
    """Apply pending migrations (stops at the first failure)."""
    from mailspine.ops.migrations import run_migrations

    ctx = make_context(database, migrations_dir, dry_run=dry_run)
    result = run_migrations(ctx)
    if json_out:
        output_json(result)
    else:
        fail_on_error(result)
        print_warnings(result)
        data = result.data
        for name in data.migrations_run:
            console.print(f"  [green]applied[/green] {name}")
        for error in data.errors:
            console.print(f"  [red]failed[/red]  {error}")
        if not data.migrations_run and not data.errors and not dry_run:
            console.print("[dim]No pending migrations.[/dim]")
        console.print(f"[dim]{data.total_time_ms}ms[/dim]")
    if not result.success or not result.data.success:
        raise typer.Exit(code=1)


@app.command()
def status(
    database: str | None = DatabaseOpt,
    migrations_dir: Path | None = MigrationsOpt,
    json_out: bool = JsonOpt,
) -> None:
    """Show defined, applied and pending migrations."""
    from mailspine.ops.migrations import get_migration_status

    ctx = make_context(database, migrations_dir)
    result = get_migration_status(ctx)
    if json_out:
        output_result(result, as_json=True)
        return

    fail_on_error(result)
    data = result.data
    console.print(f"[bold]Migrations[/bold]: {data.executed} applied / {data.total} defined")
    if data.last_migration:
        last = data.last_migration
        console.print(f"  last: {last.filename} at {last.executed_at:%Y-%m-%d %H:%M:%S}")
    for name in data.pending:
        console.print(f"  [yellow]pending[/yellow] {name}")


@app.command()
def rollback(
    database: str | None = DatabaseOpt,
    migrations_dir: Path | None = MigrationsOpt,
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be rolled back"),
    json_out: bool = JsonOpt,
) -> None:
    """Reverse the most recently applied migration."""
    from mailspine.ops.migrations import rollback_last_migration

    ctx = make_context(database, migrations_dir, dry_run=dry_run)
    result = rollback_last_migration(ctx)
    if json_out:
        output_json(result)
    else:
        fail_on_error(result)
        print_warnings(result)
        outcome = result.data
        if outcome.success and not dry_run:
            console.print(f"[green]Rolled back[/green] {outcome.rolled_back}")
        elif not outcome.success:
            console.print(f"[red]Rollback failed[/red]: {outcome.error}")
    if not result.success or not result.data.success:
        raise typer.Exit(code=1)


@app.command()
def verify(
    database: str | None = DatabaseOpt,
    migrations_dir: Path | None = MigrationsOpt,
    json_out: bool = JsonOpt,
) -> None:
    """Check applied migrations against the files on disk (exit 1 on drift)."""
    from mailspine.ops.migrations import verify_migrations

    ctx = make_context(database, migrations_dir)
    result = verify_migrations(ctx)
    if json_out:
        output_json(result)
    else:
        fail_on_error(result)
        report = result.data
        if not report.entries:
            console.print("[dim]No applied migrations.[/dim]")
        else:
            print_table(report.entries, title="Checksums", columns=["filename", "state"])
    if not result.success or not result.data.clean:
        raise typer.Exit(code=1)


@app.command("init-ledger")
def init_ledger(
    database: str | None = DatabaseOpt,
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview without changes"),
    json_out: bool = JsonOpt,
) -> None:
    """Create the deployment_logs table (one-time schema setup)."""
    from mailspine.ops.deployments import initialize_ledger

    ctx = make_context(database, dry_run=dry_run)
    result = initialize_ledger(ctx)
    output_result(result, as_json=json_out, title="Deployment ledger ready")
