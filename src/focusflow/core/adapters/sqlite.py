"""SQLite database adapter (the embedded-file engine)."""

from __future__ import annotations

import re
import sqlite3
import threading
from typing import Any

from focusflow.core.errors import FocusFlowError
from focusflow.core.result import Execution
from focusflow.core.splitter import leading_keyword

from .base import DatabaseAdapter
from .types import BenignError, DatabaseConfig, DatabaseType

# SQLite reports both conditions as plain SQLITE_ERROR; only the message differs
_BENIGN_MESSAGES: tuple[tuple[re.Pattern[str], BenignError], ...] = (
    (re.compile(r"^duplicate column name", re.IGNORECASE), BenignError.DUPLICATE_COLUMN),
    (re.compile(r"^index \S+ already exists", re.IGNORECASE), BenignError.DUPLICATE_INDEX),
)

_INSERT_KEYWORDS = frozenset({"INSERT", "REPLACE"})


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Uses the built-in sqlite3 module with a single connection shared by
    worker threads and serialized by a lock. Suitable for:
    - Local development and tests
    - Single-node deployments backed by a database file
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        timeout: float = 5.0,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.SQLITE,
            path=path,
            options=kwargs,
        )
        super().__init__(config)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> SQLiteAdapter:
        return cls(config.path or ":memory:", **config.options)

    def _max_concurrency(self) -> int | None:
        # The lock serializes access to the single handle
        return None

    def _open(self) -> None:
        path = self._config.path or ":memory:"
        uri = path.startswith("file:")
        self._conn = sqlite3.connect(
            path,
            timeout=self._timeout,
            check_same_thread=False,
            uri=uri,
        )
        self._conn.execute("PRAGMA foreign_keys = ON")

    def _close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _execute(self, sql: str, params: tuple[Any, ...] | None) -> Execution:
        with self._lock:
            conn = self._conn
            if conn is None:
                raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
            try:
                cursor = conn.execute(sql, params or ())
                columns = tuple(d[0] for d in cursor.description) if cursor.description else ()
                rows = tuple(tuple(r) for r in cursor.fetchall()) if cursor.description else ()
                conn.commit()
            except sqlite3.Error:
                if conn.in_transaction:
                    conn.rollback()
                raise
        # lastrowid is connection-wide; an ignored insert would report a stale id
        inserted = cursor.rowcount > 0 and leading_keyword(sql) in _INSERT_KEYWORDS
        lastrowid = cursor.lastrowid if inserted else None
        return Execution(
            columns=columns,
            rows=rows,
            rowcount=cursor.rowcount,
            lastrowid=lastrowid,
        )

    def error_code(self, exc: BaseException) -> str | int | None:
        return getattr(exc, "sqlite_errorname", None)

    def is_integrity_error(self, exc: BaseException) -> bool:
        return isinstance(exc, sqlite3.IntegrityError)

    def classify_error(self, exc: BaseException) -> BenignError | None:
        if isinstance(exc, FocusFlowError):
            exc = exc.cause if exc.cause is not None else exc
        message = exc.message if isinstance(exc, FocusFlowError) else str(exc)
        for pattern, kind in _BENIGN_MESSAGES:
            if pattern.search(message):
                return kind
        return None


__all__ = [
    "SQLiteAdapter",
]
