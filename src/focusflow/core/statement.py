"""Prepared statements.

A ``PreparedStatement`` is an immutable ``(query, params)`` value tied to the
adapter that produced it. Nothing touches the engine until one of the
terminal coroutines (``first``, ``run``, ``all``, ``raw``) is awaited.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from focusflow.core.errors import QueryError
from focusflow.core.result import ResultEnvelope

if TYPE_CHECKING:
    from focusflow.core.adapters.base import DatabaseAdapter


@dataclass(frozen=True)
class PreparedStatement:
    """
    Query text plus positionally bound, already-coerced parameters.

    Example:
        >>> stmt = db.prepare("SELECT * FROM tasks WHERE user_id = ? AND done = ?")
        >>> stmt = stmt.bind(7).bind(False)
        >>> stmt.params
        (7, False)
    """

    adapter: DatabaseAdapter = field(repr=False, compare=False)
    query: str
    params: tuple[Any, ...] = ()

    def bind(self, *values: Any) -> PreparedStatement:
        """Return a new statement with ``values`` coerced and appended."""
        return replace(self, params=self.params + self.adapter.coerce(values))

    async def first(self, column: str | None = None) -> Any:
        execution = await self.adapter.dispatch(self.query, self.params)
        if not execution.rows:
            return None
        row = dict(zip(execution.columns, execution.rows[0], strict=False))
        if column is None:
            return row
        if column not in row:
            raise QueryError(f"Column not present in result: {column!r}").with_context(
                sql=self.query, params=self.params, dialect=self.adapter.dialect.name
            )
        return row[column]

    async def run(self) -> ResultEnvelope:
        execution = await self.adapter.dispatch(self.query, self.params, write=True)
        return ResultEnvelope.for_write(execution)

    async def all(self) -> ResultEnvelope:
        execution = await self.adapter.dispatch(self.query, self.params)
        return ResultEnvelope.for_read(execution)

    async def raw(self, column_names: bool = False) -> list[tuple[Any, ...]]:
        """Rows as tuples; with ``column_names`` the first entry is the header."""
        execution = await self.adapter.dispatch(self.query, self.params)
        rows = list(execution.rows)
        if column_names:
            rows.insert(0, execution.columns)
        return rows


__all__ = [
    "PreparedStatement",
]
