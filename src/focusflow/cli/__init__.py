"""
CLI layer for FocusFlow.

Provides a Typer application whose sub-commands delegate to
``focusflow.core`` (connection factory, migration runner, translator).
This package handles only terminal transport: argument parsing,
coloured output, and table formatting.

Entry point::

    focusflow --help
"""

from focusflow.cli.app import app

__all__ = ["app"]
