"""
Root Typer application for the FocusFlow CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from focusflow import __version__

app = Typer(
    name="focusflow",
    help="focusflow: storage and schema tooling for the FocusFlow service.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"focusflow {__version__}")
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
    """focusflow CLI: migrate, inspect and check the configured database."""


# ── Sub-command registration ─────────────────────────────────────────────

from focusflow.cli.db import app as db_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database migrations and connectivity.")
