"""PostgreSQL database adapter.

Uses ``psycopg2`` with a ``ThreadedConnectionPool``. psycopg2 uses the
**pyformat** (``%s``) placeholder style, so bound statements are rewritten
from ``?`` by the dialect before dispatch.

This adapter is import-guarded: if ``psycopg2`` is not installed a clear
:class:`~focusflow.core.errors.ConfigError` is raised at ``connect()`` time.
"""

from __future__ import annotations

import re
from typing import Any

from focusflow.core.errors import ConfigError
from focusflow.core.result import Execution
from focusflow.core.splitter import leading_keyword, split_statements

from .base import DatabaseAdapter
from .types import BenignError, DatabaseConfig, DatabaseType

_RETURNING_RE = re.compile(r"\bRETURNING\b", re.IGNORECASE)


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter.

    ``INSERT`` statements executed through ``run()`` get ``RETURNING *``
    appended so the new row's ``id`` can be reported as ``inserted_id``.
    """

    benign_codes = {
        "42701": BenignError.DUPLICATE_COLUMN,  # duplicate_column
        "42P07": BenignError.DUPLICATE_INDEX,  # duplicate_table (covers indexes)
    }

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        dsn: str | None = None,
        ssl: bool = False,
        pool_size: int = 10,
        connect_timeout: int = 10,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.POSTGRESQL,
            dsn=dsn,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            ssl=ssl,
            pool_size=pool_size,
            connect_timeout=connect_timeout,
            options=kwargs,
        )
        super().__init__(config)
        self._pool: Any = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> PostgreSQLAdapter:
        return cls(
            host=config.host,
            port=config.effective_port or 5432,
            database=config.database,
            username=config.username,
            password=config.password,
            dsn=config.dsn,
            ssl=config.ssl,
            pool_size=config.pool_size,
            connect_timeout=config.connect_timeout,
            **config.options,
        )

    def _open(self) -> None:
        try:
            import psycopg2.pool
        except ImportError:
            raise ConfigError(
                "psycopg2 is required for PostgreSQL. Install with: pip install psycopg2-binary"
            ) from None

        kwargs: dict[str, Any] = {"connect_timeout": self._config.connect_timeout}
        if self._config.ssl:
            kwargs["sslmode"] = "require"
        kwargs.update(self._config.options)

        if self._config.dsn:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                1, self._config.pool_size, self._config.dsn, **kwargs
            )
        else:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=self._config.pool_size,
                host=self._config.host,
                port=self._config.effective_port,
                dbname=self._config.database,
                user=self._config.username,
                password=self._config.password,
                **kwargs,
            )

    def _close(self) -> None:
        if self._pool:
            self._pool.closeall()
            self._pool = None

    def _prepare_sql(self, sql: str, params: tuple[Any, ...], *, write: bool) -> str:
        sql = super()._prepare_sql(sql, params, write=write)
        if not write:
            return sql
        # Comments are dropped so the clause cannot land inside a trailing one
        statements = split_statements(sql)
        if len(statements) != 1:
            return sql
        statement = statements[0]
        if leading_keyword(statement) == "INSERT" and not _RETURNING_RE.search(statement):
            return statement + " RETURNING *"
        return sql

    def _execute(self, sql: str, params: tuple[Any, ...] | None) -> Execution:
        conn = self._pool.getconn()
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, params)
                columns: tuple[str, ...] = ()
                rows: tuple[tuple[Any, ...], ...] = ()
                if cursor.description:
                    columns = tuple(d[0] for d in cursor.description)
                    rows = tuple(tuple(r) for r in cursor.fetchall())
                rowcount = cursor.rowcount
            finally:
                cursor.close()
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

        lastrowid = None
        if leading_keyword(sql) == "INSERT" and rows and "id" in columns:
            value = rows[0][columns.index("id")]
            lastrowid = value if isinstance(value, int) else None
        return Execution(
            columns=columns,
            rows=rows,
            rowcount=rowcount,
            lastrowid=lastrowid,
        )

    def error_code(self, exc: BaseException) -> str | int | None:
        return getattr(exc, "pgcode", None)

    def is_integrity_error(self, exc: BaseException) -> bool:
        # SQLSTATE class 23: integrity constraint violation
        code = self.error_code(exc)
        return isinstance(code, str) and code.startswith("23")


__all__ = [
    "PostgreSQLAdapter",
]
