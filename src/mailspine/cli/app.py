"""
Root Typer application for the mailspine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="mailspine",
    help="mailspine: schema migrations and release pipeline.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from mailspine import __version__

        typer.echo(f"mailspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """mailspine CLI: migrate the schema, ship releases, read the ledger."""


# ── Sub-command registration ─────────────────────────────────────────────

from mailspine.cli.db import app as db_app  # noqa: E402
from mailspine.cli.deploy import app as deploy_app  # noqa: E402

app.add_typer(db_app, name="db", help="Schema migrations.")
app.add_typer(deploy_app, name="deploy", help="Release pipeline and deployment ledger.")
