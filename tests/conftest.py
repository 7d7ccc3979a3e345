"""Shared pytest fixtures for the focusflow test suite."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
import structlog

from focusflow.core.adapters import MySQLAdapter, PostgreSQLAdapter, SQLiteAdapter

REPO_ROOT = Path(__file__).resolve().parents[1]
CANONICAL_MIGRATIONS = REPO_ROOT / "migrations"

_ENV_VARS = (
    "DB_TYPE",
    "DB_HOST",
    "DB_PORT",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
    "DB_SSL",
    "DATABASE_URL",
    "DB_POOL_SIZE",
    "DB_CONNECT_TIMEOUT",
    "DATABASE_PATH",
    "MIGRATIONS_DIR",
    "LOG_LEVEL",
    "LOG_JSON",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Strip database settings from the environment and reset structlog."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest_asyncio.fixture
async def sqlite_db():
    """Connected in-memory SQLite adapter."""
    adapter = SQLiteAdapter(":memory:")
    await adapter.connect()
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def tasks_db(sqlite_db):
    """In-memory SQLite adapter with a ``tasks`` table."""
    await sqlite_db.exec(
        """
        CREATE TABLE tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            done BOOLEAN DEFAULT 0,
            due_at TEXT
        );
        """
    )
    return sqlite_db


@pytest.fixture
def migrations_dir(tmp_path):
    """A small canonical migrations directory.

    ``2.sql`` adds a column named with a MySQL reserved word, ``10.sql``
    checks numeric ordering, and the down file must be ignored.
    """
    root = tmp_path / "migrations"
    root.mkdir()
    (root / "1.sql").write_text(
        "CREATE TABLE tasks (\n"
        "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
        "  title TEXT NOT NULL,\n"
        "  created_at DATETIME DEFAULT (datetime('now'))\n"
        ");\n",
        encoding="utf-8",
    )
    (root / "2.sql").write_text(
        "ALTER TABLE tasks ADD COLUMN `repeat` TEXT DEFAULT 'none';\n"
        "CREATE INDEX idx_tasks_title ON tasks(title);\n",
        encoding="utf-8",
    )
    (root / "3.down.sql").write_text("DROP TABLE tasks;\n", encoding="utf-8")
    (root / "notes.txt").write_text("not a migration\n", encoding="utf-8")
    (root / "10.sql").write_text(
        "CREATE TABLE labels (id INTEGER PRIMARY KEY, name TEXT NOT NULL);\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def canonical_migrations():
    """The repository's canonical migrations directory."""
    return CANONICAL_MIGRATIONS


def _mock_pool():
    pool = MagicMock()
    conn = MagicMock()
    cursor = MagicMock()
    cursor.description = None
    cursor.rowcount = 0
    cursor.lastrowid = None
    conn.cursor.return_value = cursor
    return pool, conn, cursor


@pytest.fixture
def pg_pool():
    """Patched psycopg2 pool: ``(pool_cls, pool, conn, cursor)``."""
    with patch("psycopg2.pool.ThreadedConnectionPool") as pool_cls:
        pool, conn, cursor = _mock_pool()
        pool_cls.return_value = pool
        pool.getconn.return_value = conn
        yield pool_cls, pool, conn, cursor


@pytest_asyncio.fixture
async def pg_db(pg_pool):
    adapter = PostgreSQLAdapter(host="db.internal", database="focusflow", username="app", password="s3cret")
    await adapter.connect()
    yield adapter
    await adapter.close()


@pytest.fixture
def mysql_pool():
    """Patched mysql.connector pool: ``(pool_cls, pool, conn, cursor)``."""
    with patch("mysql.connector.pooling.MySQLConnectionPool") as pool_cls:
        pool, conn, cursor = _mock_pool()
        pool_cls.return_value = pool
        pool.get_connection.return_value = conn
        yield pool_cls, pool, conn, cursor


@pytest_asyncio.fixture
async def mysql_db(mysql_pool):
    adapter = MySQLAdapter(host="db.internal", database="focusflow", username="root", password="")
    await adapter.connect()
    yield adapter
    await adapter.close()
