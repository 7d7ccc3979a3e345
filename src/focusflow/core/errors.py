"""
Structured error types for the FocusFlow storage layer.

Every failure the storage layer cannot recover from is surfaced as a
``FocusFlowError`` subclass carrying enough context (SQL text, bound
parameters, engine error code, dialect) for the calling route handler to
produce an actionable response. Route handlers never see driver-specific
exception types; the driver exception is preserved as ``cause``.

Manifesto:
    - **Typed Error Hierarchy:** Connection, statement, migration and
      configuration failures are distinct types
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry the offending query and parameters
    - **Error Chaining:** Driver exceptions are kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       FocusFlowError                             │
        │  (category, retryable, retry_after, context, cause)             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TransientError          ConfigError         CoercionError       │
        │  (retryable=True)        (CONFIG)            (VALIDATION)        │
        │       │                                                          │
        │  DatabaseConnectionError                                         │
        │                                                                  │
        │  DatabaseError (DATABASE)                                        │
        │       │                                                          │
        │  QueryError    IntegrityError    MigrationError                  │
        └─────────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Let a psycopg2 / mysql.connector / sqlite3 error escape an adapter
    ✅ DO: Wrap it in QueryError / IntegrityError with ``cause=``

    ❌ DON'T: Retry statement errors automatically
    ✅ DO: Leave retry policy to the caller (``is_retryable()``)

Usage:
    from focusflow.core.errors import QueryError

    try:
        await db.prepare("SELECT * FROM tasks WHERE id = ?").bind(task_id).first()
    except QueryError as e:
        log.error("task.lookup_failed", **e.to_dict())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Categories are grouped by their typical retry behavior:
    - **Infrastructure (usually transient):** NETWORK, DATABASE
    - **Data errors:** VALIDATION
    - **Configuration (never retryable):** CONFIG
    - **Schema evolution:** MIGRATION
    - **Internal errors:** INTERNAL, UNKNOWN
    """

    NETWORK = "NETWORK"           # Connection refused, DNS, socket timeout
    DATABASE = "DATABASE"         # Pool exhaustion, statement failure
    VALIDATION = "VALIDATION"     # Constraint violations, bad values
    CONFIG = "CONFIG"             # Missing config, unknown engine
    MIGRATION = "MIGRATION"       # Schema migration failures
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata attached to storage errors.

    Attributes:
        sql: Statement text that was being executed
        params: Bound parameter values (after coercion)
        engine_code: Driver/engine error code (SQLSTATE, MySQL errno, SQLite error name)
        dialect: Engine name (``sqlite``, ``postgresql``, ``mysql``)
        migration_number: Canonical migration number, when raised by the runner
        metadata: Additional key-value pairs

    Example:
        >>> ctx = ErrorContext(sql="SELECT 1", dialect="sqlite")
        >>> ctx.to_dict()
        {'sql': 'SELECT 1', 'dialect': 'sqlite'}
    """

    sql: str | None = None
    params: tuple[Any, ...] | None = None
    engine_code: str | int | None = None
    dialect: str | None = None
    migration_number: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["sql", "params", "engine_code", "dialect", "migration_number"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = list(value) if key == "params" else value
        if self.metadata:
            result.update(self.metadata)
        return result


class FocusFlowError(Exception):
    """
    Base exception for all FocusFlow storage errors.

    All instances carry:
    - **category:** ErrorCategory for classification and routing
    - **retryable:** Whether the operation can be retried
    - **retry_after:** Optional seconds to wait before retry
    - **context:** ErrorContext with the offending statement
    - **cause:** Underlying driver exception

    Subclasses set ``default_category`` and ``default_retryable``.

    Examples:
        >>> error = FocusFlowError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(sql="SELECT 1").context.sql
        'SELECT 1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    @property
    def engine_code(self) -> str | int | None:
        """Engine error code of the underlying driver failure, if any."""
        return self.context.engine_code

    def with_context(self, **kwargs: Any) -> FocusFlowError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("Failed").with_context(sql=sql, params=params)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS
# =============================================================================


class TransientError(FocusFlowError):
    """Temporary error that may succeed on retry (caller decides)."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class DatabaseConnectionError(TransientError):
    """Database connection or pool error."""

    default_category = ErrorCategory.DATABASE


# =============================================================================
# CONFIGURATION / VALUE ERRORS
# =============================================================================


class ConfigError(FocusFlowError):
    """Configuration error (missing driver, unknown engine, bad settings)."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class CoercionError(FocusFlowError):
    """A value could not be converted to an engine's literal format.

    Raised by the strict helpers in :mod:`focusflow.core.coercion`; the
    parameter-list coercion path catches it and keeps the original value.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(FocusFlowError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class QueryError(DatabaseError):
    """SQL statement error (syntax, type mismatch, timeout)."""

    pass


class IntegrityError(DatabaseError):
    """Database integrity constraint violation."""

    default_category = ErrorCategory.VALIDATION


class MigrationError(DatabaseError):
    """A canonical migration failed; the run was aborted."""

    default_category = ErrorCategory.MIGRATION

    @property
    def migration_number(self) -> int | None:
        return self.context.migration_number


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, FocusFlowError):
        return error.retryable
    retryable_types = (
        ConnectionError,
        ConnectionResetError,
        ConnectionRefusedError,
        BrokenPipeError,
    )
    return isinstance(error, retryable_types)


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, FocusFlowError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "FocusFlowError",
    "TransientError",
    "DatabaseConnectionError",
    "ConfigError",
    "CoercionError",
    "DatabaseError",
    "QueryError",
    "IntegrityError",
    "MigrationError",
    "is_retryable",
    "categorize_error",
]
