"""Result envelopes returned by every statement execution.

Every adapter builds its envelopes from the same :class:`Execution` record,
so ``run()``/``all()`` results are structurally identical across engines.
``to_dict()`` renders the serverless-database wire shape that route
handlers already expect (``results``, ``meta.last_row_id``, ...).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Execution:
    """Raw outcome of one driver call, before it becomes an envelope."""

    columns: tuple[str, ...] = ()
    rows: tuple[tuple[Any, ...], ...] = ()
    rowcount: int = 0
    lastrowid: int | None = None
    duration_ms: float = 0.0

    def as_dicts(self) -> list[dict[str, Any]]:
        return [dict(zip(self.columns, row, strict=False)) for row in self.rows]


@dataclass(frozen=True, slots=True)
class ResultMeta:
    changes: int = 0
    inserted_id: int | None = None
    rows_read: int = 0
    rows_written: int = 0
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "changes": self.changes,
            "last_row_id": self.inserted_id,
            "rows_read": self.rows_read,
            "rows_written": self.rows_written,
            "duration": self.duration_ms,
        }


@dataclass(frozen=True, slots=True)
class ResultEnvelope:
    """Uniform result of ``run()``, ``all()`` and each ``batch()`` entry.

    ``rows`` is ``None`` for write-oriented calls and a list of dicts for
    read-oriented calls. ``meta.inserted_id`` is only set after a write that
    reported an id.
    """

    success: bool
    meta: ResultMeta = field(default_factory=ResultMeta)
    rows: list[dict[str, Any]] | None = None

    @classmethod
    def for_read(cls, execution: Execution) -> ResultEnvelope:
        rows = execution.as_dicts()
        return cls(
            success=True,
            rows=rows,
            meta=ResultMeta(
                rows_read=len(rows),
                duration_ms=execution.duration_ms,
            ),
        )

    @classmethod
    def for_write(cls, execution: Execution) -> ResultEnvelope:
        changes = max(execution.rowcount, 0)
        return cls(
            success=True,
            meta=ResultMeta(
                changes=changes,
                inserted_id=execution.lastrowid or None,
                rows_written=changes,
                duration_ms=execution.duration_ms,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success, "meta": self.meta.to_dict()}
        if self.rows is not None:
            result["results"] = self.rows
        return result


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Result of ``Database.exec()``.

    Carries the same ``success``/``meta`` pair as :class:`ResultEnvelope`,
    with ``meta`` summed over the script, plus one write envelope per
    statement. ``meta.inserted_id`` is never set for a script.
    """

    count: int
    results: list[ResultEnvelope]
    success: bool = True
    meta: ResultMeta = field(default_factory=ResultMeta)

    @classmethod
    def from_results(cls, results: list[ResultEnvelope], duration_ms: float) -> ExecResult:
        return cls(
            count=len(results),
            results=results,
            success=all(r.success for r in results),
            meta=ResultMeta(
                changes=sum(r.meta.changes for r in results),
                rows_written=sum(r.meta.rows_written for r in results),
                duration_ms=duration_ms,
            ),
        )

    @property
    def duration_ms(self) -> float:
        return self.meta.duration_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "meta": self.meta.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "count": self.count,
        }


__all__ = [
    "Execution",
    "ResultMeta",
    "ResultEnvelope",
    "ExecResult",
]
