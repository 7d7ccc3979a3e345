"""MySQL database adapter.

Uses ``mysql.connector`` from the ``mysql-connector-python`` package.
MySQL uses **format** (``%s``) placeholder style.

Install the driver::

    pip install mysql-connector-python

This adapter is import-guarded: if ``mysql.connector`` is not installed
a clear :class:`~focusflow.core.errors.ConfigError` is raised at
``connect()`` time.
"""

from __future__ import annotations

from typing import Any

from focusflow.core.errors import ConfigError
from focusflow.core.result import Execution
from focusflow.core.splitter import leading_keyword

from .base import DatabaseAdapter
from .types import BenignError, DatabaseConfig, DatabaseType

# mysql.connector refuses pools larger than this (CNX_POOL_MAXSIZE)
MAX_POOL_SIZE = 32

# Duplicate entry, FK parent/child missing, NOT NULL violation
_INTEGRITY_ERRNOS = frozenset({1062, 1216, 1217, 1451, 1452, 1048, 1586})
_INSERT_KEYWORDS = frozenset({"INSERT", "REPLACE"})


class MySQLAdapter(DatabaseAdapter):
    """MySQL / MariaDB database adapter.

    Uses a ``mysql.connector`` connection pool, ``utf8mb4``, and commits
    after every statement.
    """

    benign_codes = {
        1060: BenignError.DUPLICATE_COLUMN,  # ER_DUP_FIELDNAME
        1061: BenignError.DUPLICATE_INDEX,  # ER_DUP_KEYNAME
    }

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        pool_size: int = 10,
        charset: str = "utf8mb4",
        ssl: bool = False,
        connect_timeout: int = 10,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.MYSQL,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            ssl=ssl,
            pool_size=min(pool_size, MAX_POOL_SIZE),
            connect_timeout=connect_timeout,
            options={**(kwargs or {}), "charset": charset},
        )
        super().__init__(config)
        self._pool: Any = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> MySQLAdapter:
        options = dict(config.options)
        charset = options.pop("charset", "utf8mb4")
        return cls(
            host=config.host,
            port=config.effective_port or 3306,
            database=config.database,
            username=config.username,
            password=config.password,
            pool_size=config.pool_size,
            charset=charset,
            ssl=config.ssl,
            connect_timeout=config.connect_timeout,
            **options,
        )

    def _open(self) -> None:
        try:
            from mysql.connector import pooling
        except ImportError:
            raise ConfigError(
                "mysql-connector-python is required for MySQL. "
                "Install with: pip install mysql-connector-python"
            ) from None

        options = dict(self._config.options)
        charset = options.pop("charset", "utf8mb4")
        if self._config.ssl:
            options.setdefault("ssl_disabled", False)

        self._pool = pooling.MySQLConnectionPool(
            pool_name="focusflow_mysql_pool",
            pool_size=self._config.pool_size,
            host=self._config.host,
            port=self._config.effective_port,
            database=self._config.database,
            user=self._config.username,
            password=self._config.password,
            charset=charset,
            connect_timeout=self._config.connect_timeout,
            autocommit=False,
            **options,
        )

    def _close(self) -> None:
        if self._pool is not None:
            # Closes the idle connections held by the pool
            self._pool._remove_connections()
            self._pool = None

    def _execute(self, sql: str, params: tuple[Any, ...] | None) -> Execution:
        conn = self._pool.get_connection()
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
                lastrowid = cursor.lastrowid
            finally:
                cursor.close()
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            # mysql.connector returns pooled connections on close()
            conn.close()

        if leading_keyword(sql) not in _INSERT_KEYWORDS:
            lastrowid = None
        return Execution(
            columns=columns,
            rows=rows,
            rowcount=rowcount,
            lastrowid=lastrowid or None,
        )

    def error_code(self, exc: BaseException) -> str | int | None:
        errno = getattr(exc, "errno", None)
        return errno if isinstance(errno, int) and errno > 0 else None

    def is_integrity_error(self, exc: BaseException) -> bool:
        return self.error_code(exc) in _INTEGRITY_ERRNOS


__all__ = [
    "MySQLAdapter",
    "MAX_POOL_SIZE",
]
