"""SQL script splitting.

Used by ``Database.exec()`` and by the migration runner, which executes
canonical migration files one statement at a time so a benign failure
only skips the statement that caused it.
"""

from __future__ import annotations

import re

_READ_KEYWORDS = frozenset({"SELECT", "WITH", "PRAGMA", "EXPLAIN", "SHOW", "VALUES", "DESCRIBE"})
_RETURNING_RE = re.compile(r"\bRETURNING\b", re.IGNORECASE)
_FIRST_WORD_RE = re.compile(r"[A-Za-z]+")


def split_statements(sql: str) -> list[str]:
    """Split a SQL script into individual statements.

    Semicolons inside string literals, quoted identifiers (``"x"`` and
    `` `x` ``) and comments do not end a statement. ``--`` and ``/* */``
    comments are dropped; empty statements are skipped. Returned statements
    carry no trailing semicolon.

    Example:
        >>> split_statements("INSERT INTO t VALUES ('a;b'); -- done\\nSELECT 1;")
        ["INSERT INTO t VALUES ('a;b')", 'SELECT 1']
    """
    statements: list[str] = []
    current: list[str] = []
    i = 0
    n = len(sql)
    while i < n:
        ch = sql[i]
        if ch in ("'", '"', "`"):
            end = i + 1
            while end < n:
                if sql[end] == ch:
                    if end + 1 < n and sql[end + 1] == ch:
                        end += 2
                        continue
                    break
                end += 1
            current.append(sql[i : end + 1])
            i = end + 1
            continue
        if ch == "-" and sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end == -1 else end
            continue
        if ch == "/" and sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end == -1 else end + 2
            current.append(" ")
            continue
        if ch == ";":
            _flush(current, statements)
            current = []
        else:
            current.append(ch)
        i += 1
    _flush(current, statements)
    return statements


def _flush(parts: list[str], statements: list[str]) -> None:
    stmt = "".join(parts).strip()
    if stmt:
        statements.append(stmt)


def leading_keyword(sql: str) -> str:
    """Upper-cased first keyword of a statement (``''`` if none)."""
    match = _FIRST_WORD_RE.search(sql)
    return match.group(0).upper() if match else ""


def is_read_statement(sql: str) -> bool:
    """Whether a statement produces a row set.

    Queries (``SELECT``, ``WITH`` ...) and writes with a ``RETURNING``
    clause are reads; everything else is a write.
    """
    return leading_keyword(sql) in _READ_KEYWORDS or bool(_RETURNING_RE.search(sql))


__all__ = [
    "split_statements",
    "leading_keyword",
    "is_read_statement",
]
