"""
CLI utility helpers: settings loading, async bridging and output formatting.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from focusflow.core.errors import FocusFlowError
from focusflow.core.logging import configure_logging
from focusflow.core.settings import DatabaseSettings

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")


# ── Settings / runtime helpers ───────────────────────────────────────────


def load_settings(migrations_dir: str | None = None) -> DatabaseSettings:
    """Read settings from the environment and configure logging."""
    overrides: dict[str, Any] = {}
    if migrations_dir:
        overrides["migrations_dir"] = migrations_dir
    settings = DatabaseSettings(**overrides)
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    return settings


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion, turning storage errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except FocusFlowError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def _render(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return "" if value is None else str(value)


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=_render))


def print_table(items: list[Any], *, title: str = "") -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    if not items:
        console.print("[dim]No items.[/dim]")
        return
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(_render(v) for v in d.values()))
    console.print(table)
