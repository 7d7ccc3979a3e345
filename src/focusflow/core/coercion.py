"""Value coercion between application values and engine literals.

Route handlers bind whatever the application has at hand: ``datetime``
objects, ISO-8601 strings produced by the frontend (``2026-01-19T12:36:56.984Z``),
date-only strings, numbers that may be NaN, and the ``UNSET`` sentinel for
optional fields that were never supplied. The engines disagree on what they
accept:

* SQLite stores timestamps as text; ISO strings are kept verbatim and
  ``datetime``/``date`` objects are rendered with ``isoformat()``.
* PostgreSQL and MySQL receive timestamps as ``YYYY-MM-DD HH:MM:SS`` literals
  (second precision, UTC for timezone-aware values).

Every adapter runs :func:`coerce_params` on each bound parameter list before
dispatch. A value that looks like a timestamp but fails to parse is left
unconverted and logged; one bad value never aborts the whole list.

Examples:
    >>> coerce_params([float("nan"), "x", UNSET], timestamp_literals=True)
    (0, 'x', None)
    >>> coerce_value("2026-01-19T12:36:56.984Z", timestamp_literals=True)
    '2026-01-19 12:36:56'
    >>> coerce_value("2026-01-19", timestamp_literals=True)
    '2026-01-19'
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from focusflow.core.errors import CoercionError
from focusflow.core.logging import get_logger

logger = get_logger(__name__)

# YYYY-MM-DDTHH:MM:SS with optional fraction and offset
ISO_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

SERVER_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
SERVER_DATE_FORMAT = "%Y-%m-%d"


class _Unset:
    """Marker for a parameter the caller never supplied."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


# ── Timestamp helpers ─────────────────────────────────────────────────


def is_timestamp_string(value: str) -> bool:
    """True for strings with an ISO-8601 date *and* time component."""
    return bool(ISO_DATETIME_RE.match(value))


def is_date_only_string(value: str) -> bool:
    return bool(DATE_ONLY_RE.match(value))


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp string.

    Raises:
        CoercionError: If the string does not describe a valid instant.
    """
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise CoercionError(f"Invalid timestamp: {value!r}", cause=e) from e


def to_server_datetime(value: datetime | str) -> str:
    """Render a timestamp as a ``YYYY-MM-DD HH:MM:SS`` literal.

    Timezone-aware values are converted to UTC first; naive values are
    taken as already being in server time. Sub-second precision is dropped.
    """
    dt = parse_timestamp(value) if isinstance(value, str) else value
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt.strftime(SERVER_DATETIME_FORMAT)


def to_server_date(value: date | str) -> str:
    """Render a date as ``YYYY-MM-DD``."""
    if isinstance(value, str):
        if not is_date_only_string(value):
            raise CoercionError(f"Invalid date: {value!r}")
        return value
    return value.strftime(SERVER_DATE_FORMAT)


def to_embedded_datetime(value: datetime | date) -> str:
    """Render a temporal object the way SQLite stores it (ISO-8601 text)."""
    return value.isoformat()


# ── Sanitizing ────────────────────────────────────────────────────────


def sanitize_value(value: Any) -> Any:
    """Replace values no driver should ever see.

    NaN becomes ``0`` and ``UNSET`` becomes ``None``; everything else is
    returned unchanged.
    """
    if value is UNSET:
        return None
    if isinstance(value, float) and math.isnan(value):
        logger.warning("coercion.nan_replaced", replacement=0)
        return 0
    if isinstance(value, Decimal) and value.is_nan():
        logger.warning("coercion.nan_replaced", replacement=0)
        return 0
    return value


# ── Public entry points ───────────────────────────────────────────────


def coerce_value(value: Any, *, timestamp_literals: bool) -> Any:
    """Coerce a single bound value for an engine.

    Args:
        value: Application value.
        timestamp_literals: True for engines that need ``YYYY-MM-DD HH:MM:SS``
            string literals (PostgreSQL, MySQL), False for SQLite.
    """
    value = sanitize_value(value)
    if value is None:
        return None

    if isinstance(value, datetime):
        return to_server_datetime(value) if timestamp_literals else to_embedded_datetime(value)

    if isinstance(value, date):
        return to_server_date(value) if timestamp_literals else to_embedded_datetime(value)

    if isinstance(value, str) and timestamp_literals and is_timestamp_string(value):
        try:
            return to_server_datetime(value)
        except CoercionError:
            logger.warning("coercion.failed", value=value)
            return value

    return value


def coerce_params(values: Iterable[Any], *, timestamp_literals: bool) -> tuple[Any, ...]:
    """Coerce a whole parameter list, preserving order and length."""
    original = tuple(values)
    coerced = tuple(coerce_value(v, timestamp_literals=timestamp_literals) for v in original)
    if any(a is not b for a, b in zip(original, coerced, strict=True)):
        logger.debug("coercion.applied", original=original, coerced=coerced)
    return coerced


__all__ = [
    "UNSET",
    "ISO_DATETIME_RE",
    "DATE_ONLY_RE",
    "SERVER_DATETIME_FORMAT",
    "is_timestamp_string",
    "is_date_only_string",
    "parse_timestamp",
    "to_server_datetime",
    "to_server_date",
    "to_embedded_datetime",
    "sanitize_value",
    "coerce_value",
    "coerce_params",
]
