"""Database adapter base class.

Manifesto:
    All engine adapters share lifecycle (connect/close), statement
    dispatch, parameter coercion, batch and script execution, and error
    wrapping. The abstract base class holds that shared orchestration so
    each concrete adapter only supplies the synchronous driver calls.

Features:
    - Abstract ``_open()``, ``_close()``, ``_execute()`` driver hooks
    - ``prepare()`` / ``exec()`` / ``batch()`` / ``ping()`` on top of them
    - Driver work runs in a worker thread (``asyncio.to_thread``); server
      pools are bounded by an ``asyncio.Semaphore`` of the pool size
    - Enumerated benign error codes and ``classify_error()`` for the
      migration runner
    - Async context-manager protocol for connection lifecycle

Guardrails:
    ❌ DON'T: Let a driver exception escape ``dispatch()``
    ✅ DO: Raise ``QueryError`` / ``IntegrityError`` with ``cause=``

    ❌ DON'T: Treat benign DDL failures as success here
    ✅ DO: Leave that decision to the migration runner via ``classify_error()``
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import replace
from typing import Any, ClassVar

from focusflow.core.coercion import coerce_params
from focusflow.core.dialect import Dialect, get_dialect
from focusflow.core.errors import (
    DatabaseConnectionError,
    FocusFlowError,
    IntegrityError,
    QueryError,
)
from focusflow.core.logging import get_logger
from focusflow.core.result import Execution, ExecResult, ResultEnvelope
from focusflow.core.splitter import is_read_statement, split_statements
from focusflow.core.statement import PreparedStatement

from .types import BenignError, DatabaseConfig, DatabaseType

logger = get_logger(__name__)


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Provides the uniform async interface and defines the synchronous
    driver hooks that all adapters must implement.
    """

    # Engine error code -> benign classification
    benign_codes: ClassVar[dict[Any, BenignError]] = {}

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._connected = False
        self._dialect: Dialect = get_dialect(config.db_type.value)
        self._semaphore: asyncio.Semaphore | None = None

    @classmethod
    @abstractmethod
    def from_config(cls, config: DatabaseConfig) -> DatabaseAdapter:
        """Build an adapter from a ``DatabaseConfig``."""
        ...

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def db_type(self) -> DatabaseType:
        """Database type."""
        return self._config.db_type

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    # ------------------------------------------------------------------
    # Driver hooks (synchronous, run in a worker thread)
    # ------------------------------------------------------------------

    @abstractmethod
    def _open(self) -> None:
        """Open the connection or pool."""
        ...

    @abstractmethod
    def _close(self) -> None:
        """Close the connection or drain the pool."""
        ...

    @abstractmethod
    def _execute(self, sql: str, params: tuple[Any, ...] | None) -> Execution:
        """Run one statement on a checked-out connection and commit.

        ``sql`` is already in the driver's paramstyle. ``params`` is ``None``
        when nothing is bound. Driver exceptions propagate unchanged.
        """
        ...

    @abstractmethod
    def error_code(self, exc: BaseException) -> str | int | None:
        """Engine error code of a driver exception (SQLSTATE, errno, ...)."""
        ...

    @abstractmethod
    def is_integrity_error(self, exc: BaseException) -> bool:
        ...

    def _max_concurrency(self) -> int | None:
        """Upper bound on in-flight statements (``None`` for unbounded)."""
        return self._config.pool_size

    def _prepare_sql(self, sql: str, params: tuple[Any, ...], *, write: bool) -> str:
        """Rewrite application SQL for the driver."""
        if params:
            return self._dialect.translate_placeholders(sql)
        return sql

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Establish connection to database."""
        if self._connected:
            return
        try:
            await asyncio.to_thread(self._open)
        except FocusFlowError:
            raise
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to connect to {self._dialect.name}: {e}",
                cause=e,
            ).with_context(dialect=self._dialect.name, engine_code=self.error_code(e)) from e

        limit = self._max_concurrency()
        self._semaphore = asyncio.Semaphore(limit) if limit else None
        self._connected = True
        logger.info(
            "database.connected",
            dialect=self._dialect.name,
            target=self._config.to_connection_string(mask_password=True),
        )

    async def close(self) -> None:
        """Close connection to database. Safe to call more than once."""
        if not self._connected:
            return
        self._connected = False
        self._semaphore = None
        await asyncio.to_thread(self._close)
        logger.info("database.closed", dialect=self._dialect.name)

    async def ping(self) -> bool:
        """Round-trip a trivial query; ``False`` if the engine is unreachable."""
        try:
            await self.dispatch("SELECT 1", ())
        except FocusFlowError as e:
            logger.warning("database.ping_failed", dialect=self._dialect.name, error=str(e))
            return False
        return True

    async def __aenter__(self) -> DatabaseAdapter:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Uniform interface
    # ------------------------------------------------------------------

    def prepare(self, query: str) -> PreparedStatement:
        """Create a statement. Pure; no I/O happens until it is executed."""
        return PreparedStatement(self, query)

    def coerce(self, values: Sequence[Any]) -> tuple[Any, ...]:
        """Coerce bound values for this engine."""
        return coerce_params(values, timestamp_literals=self._dialect.timestamp_literals)

    async def exec(self, sql: str) -> ExecResult:
        """Execute a multi-statement script sequentially, without parameters."""
        started = time.perf_counter()
        results: list[ResultEnvelope] = []
        for statement in split_statements(sql):
            execution = await self.dispatch(statement, (), write=True)
            results.append(ResultEnvelope.for_write(execution))
        return ExecResult.from_results(results, (time.perf_counter() - started) * 1000)

    async def batch(self, statements: Sequence[PreparedStatement]) -> list[ResultEnvelope]:
        """Execute statements sequentially in input order.

        Read statements yield ``all()`` envelopes, everything else ``run()``
        envelopes. The first failure propagates; earlier statements stay
        committed.
        """
        results: list[ResultEnvelope] = []
        for stmt in statements:
            if is_read_statement(stmt.query):
                results.append(await stmt.all())
            else:
                results.append(await stmt.run())
        return results

    async def dispatch(
        self,
        sql: str,
        params: tuple[Any, ...],
        *,
        write: bool = False,
    ) -> Execution:
        """Run one statement in a worker thread and time it."""
        if not self._connected:
            raise DatabaseConnectionError(
                "Database is not connected; call connect() first"
            ).with_context(sql=sql, dialect=self._dialect.name)

        driver_sql = self._prepare_sql(sql, params, write=write)
        driver_params = params if params else None
        logger.debug(
            "statement.dispatch",
            dialect=self._dialect.name,
            sql=driver_sql,
            param_count=len(params),
        )

        started = time.perf_counter()
        if self._semaphore is None:
            execution = await asyncio.to_thread(self._execute_wrapped, driver_sql, driver_params)
        else:
            async with self._semaphore:
                execution = await asyncio.to_thread(
                    self._execute_wrapped, driver_sql, driver_params
                )
        return replace(execution, duration_ms=(time.perf_counter() - started) * 1000)

    def _execute_wrapped(self, sql: str, params: tuple[Any, ...] | None) -> Execution:
        try:
            return self._execute(sql, params)
        except FocusFlowError:
            raise
        except Exception as e:
            raise self._wrap_error(e, sql, params or ()) from e

    def _wrap_error(self, exc: Exception, sql: str, params: tuple[Any, ...]) -> FocusFlowError:
        code = self.error_code(exc)
        error_cls = IntegrityError if self.is_integrity_error(exc) else QueryError
        logger.error(
            "statement.failed",
            dialect=self._dialect.name,
            sql=sql,
            engine_code=code,
            error=str(exc),
        )
        return error_cls(str(exc), cause=exc).with_context(
            sql=sql,
            params=params,
            engine_code=code,
            dialect=self._dialect.name,
        )

    # ------------------------------------------------------------------
    # Error classification
    # ------------------------------------------------------------------

    def classify_error(self, exc: BaseException) -> BenignError | None:
        """Classify a failure as benign, or ``None`` if it is a real error.

        Accepts either the driver exception or the wrapping ``FocusFlowError``.
        """
        if isinstance(exc, FocusFlowError):
            if exc.engine_code is not None:
                return self.benign_codes.get(exc.engine_code)
            if exc.cause is None:
                return None
            exc = exc.cause
        return self.benign_codes.get(self.error_code(exc))

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"{self._config.to_connection_string(mask_password=True)!r})"
        )


__all__ = [
    "DatabaseAdapter",
]
