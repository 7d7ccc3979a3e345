"""
CLI: ``focusflow db``: schema migrations and connectivity checks.
"""

from __future__ import annotations

from pathlib import Path

import typer

from focusflow.cli.utils import (
    console,
    err_console,
    load_settings,
    print_json,
    print_table,
    run_async,
)
from focusflow.core.adapters import DatabaseType
from focusflow.core.connection import open_database
from focusflow.core.migrations import (
    MigrationResult,
    MigrationRunner,
    MigrationTranslator,
    SchemaCatalog,
    discover_migrations,
)
from focusflow.core.migrations.runner import MIGRATION_FILE_RE

app = typer.Typer(no_args_is_help=True)


@app.command()
def migrate(
    migrations_dir: str | None = typer.Option(None, "--dir", help="Canonical migrations directory"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print translated SQL without executing"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Apply pending canonical migrations to the configured database."""
    settings = load_settings(migrations_dir)

    async def _run() -> MigrationResult:
        async with open_database(settings) as db:
            runner = MigrationRunner(db, settings.migrations_dir)
            return await runner.apply_pending(dry_run=dry_run)

    result = run_async(_run())

    if json_out:
        print_json(
            {
                "applied": result.applied,
                "skipped": result.skipped,
                "failed": result.failed,
                "error": result.error.to_dict() if result.error else None,
                "planned": result.planned,
            }
        )
    elif dry_run:
        if not result.planned:
            console.print("[dim]No pending migrations.[/dim]")
        for number, statements in result.planned.items():
            console.print(f"[bold]-- migration {number}[/bold]")
            for statement in statements:
                console.print(f"{statement};", markup=False, highlight=False, soft_wrap=True)
    else:
        for number in result.applied:
            console.print(f"[green]✓[/green] migration {number} applied")
        for skipped in result.skipped_statements:
            console.print(
                f"[yellow]·[/yellow] migration {skipped.migration_number}: "
                f"skipped statement ({skipped.reason.value})"
            )
        if result.success:
            console.print(
                f"[bold green]Done[/bold green]: {len(result.applied)} applied, "
                f"{len(result.skipped)} already applied"
            )

    if not result.success:
        err_console.print(f"[bold red]Migration {result.failed} failed[/bold red]: {result.error}")
        raise typer.Exit(code=1)


@app.command()
def status(
    migrations_dir: str | None = typer.Option(None, "--dir", help="Canonical migrations directory"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show the state of every canonical migration."""
    settings = load_settings(migrations_dir)

    async def _run():
        async with open_database(settings) as db:
            return await MigrationRunner(db, settings.migrations_dir).status()

    statuses = run_async(_run())
    if json_out:
        print_json([{"number": s.number, "state": s.state, "applied_at": s.applied_at} for s in statuses])
    else:
        print_table(statuses, title="Migrations")


@app.command()
def pending(
    migrations_dir: str | None = typer.Option(None, "--dir", help="Canonical migrations directory"),
) -> None:
    """List migrations that have not been applied yet."""
    settings = load_settings(migrations_dir)

    async def _run():
        async with open_database(settings) as db:
            return await MigrationRunner(db, settings.migrations_dir).get_pending()

    files = run_async(_run())
    if not files:
        console.print("[dim]No pending migrations.[/dim]")
        return
    for migration in files:
        console.print(f"{migration.number}\t{migration.path}", highlight=False, soft_wrap=True)


@app.command()
def translate(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Canonical .sql file"),
    dialect: DatabaseType = typer.Option(DatabaseType.MYSQL, "--dialect", "-d", help="Target engine"),
) -> None:
    """Print a canonical migration translated for another engine.

    Earlier numbered files in the same directory are read first so text
    columns declared there are known.
    """
    catalog = SchemaCatalog()
    match = MIGRATION_FILE_RE.match(file.name)
    if match:
        for earlier in discover_migrations(file.parent):
            if earlier.number < int(match.group(1)):
                catalog.observe_script(earlier.read())

    translator = MigrationTranslator(dialect.value)
    sql = translator.translate_text(file.read_text(encoding="utf-8"), catalog)
    console.print(sql, markup=False, highlight=False, soft_wrap=True, end="")


@app.command()
def ping() -> None:
    """Check connectivity to the configured database."""
    settings = load_settings()

    async def _run() -> bool:
        async with open_database(settings) as db:
            return await db.ping()

    if run_async(_run()):
        console.print(f"[green]✓[/green] {settings.resolved_type.value} reachable")
    else:
        err_console.print(f"[bold red]✗[/bold red] {settings.resolved_type.value} unreachable")
        raise typer.Exit(code=1)
