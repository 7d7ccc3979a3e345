"""
Uniform relational access contract for FocusFlow route handlers.

Route handlers are written against these protocols only. Whichever engine
backs the deployment (SQLite file, PostgreSQL, MySQL), the handler sees the
same calls and the same result shapes.

Manifesto:
    Protocols define contracts without inheritance. They enable:
    - **Decoupling:** Handlers depend on shape, not on an adapter class
    - **Testability:** Any object matching the protocol works in tests
    - **Portability:** Identical handler code on all three engines

Architecture:
    ::

        protocols.py (YOU ARE HERE)
        ├── Statement  : prepared statement: bind / first / run / all / raw
        └── Database   : prepare / exec / batch / lifecycle

    Implementations:
        statement.PreparedStatement, adapters.base.DatabaseAdapter

Guardrails:
    ❌ DON'T: Import an adapter class in a route handler
    ✅ DO: Annotate handler dependencies with ``Database``

    ❌ DON'T: Add engine-specific methods here
    ✅ DO: Keep the engine differences inside the adapters
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from focusflow.core.result import ExecResult, ResultEnvelope


@runtime_checkable
class Statement(Protocol):
    """
    Prepared statement with positionally bound parameters.

    ``bind`` never mutates; it returns a new statement with the coerced
    values appended to any already bound.
    """

    @property
    def query(self) -> str: ...

    @property
    def params(self) -> tuple[Any, ...]: ...

    def bind(self, *values: Any) -> Statement: ...

    async def first(self, column: str | None = None) -> Any:
        """First row as a dict (or one column of it); ``None`` on zero rows."""
        ...

    async def run(self) -> ResultEnvelope: ...

    async def all(self) -> ResultEnvelope: ...

    async def raw(self, column_names: bool = False) -> list[tuple[Any, ...]]: ...


@runtime_checkable
class Database(Protocol):
    """
    Uniform relational database handle.

    Example:
        >>> stmt = db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("Write")
        >>> result = await stmt.run()
        >>> result.meta.inserted_id
        1
    """

    def prepare(self, query: str) -> Statement: ...

    async def exec(self, sql: str) -> ExecResult: ...

    async def batch(self, statements: Sequence[Statement]) -> list[ResultEnvelope]: ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def ping(self) -> bool: ...


__all__ = [
    "Statement",
    "Database",
]
