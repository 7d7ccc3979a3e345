"""Database adapters -- one uniform interface over three engines.

Manifesto:
    FocusFlow route handlers must run identically on a SQLite file (local
    and single-node), PostgreSQL and MySQL (hosted). Without a common
    adapter interface every handler would embed engine-specific SQL,
    placeholder styles and result shapes.

    Each server adapter is **import-guarded**: the driver is only required
    at ``connect()`` time, not at import time.

Architecture::

    DatabaseAdapter (base.py)        Abstract base: prepare/exec/batch/lifecycle
        |-- SQLiteAdapter            stdlib sqlite3 (always available)
        |-- PostgreSQLAdapter        psycopg2 ThreadedConnectionPool
        |-- MySQLAdapter             mysql.connector pooling

    AdapterRegistry (registry.py)    Singleton: DatabaseType -> adapter class
    DatabaseConfig (types.py)        Connection parameters
    DatabaseType (types.py)          Enum of supported engines
    BenignError (types.py)           Benign DDL failure kinds

Guardrails:
    ❌ ``db.prepare("SELECT * FROM tasks WHERE id=" + task_id)``
    ✅ ``db.prepare("SELECT * FROM tasks WHERE id = ?").bind(task_id)``
    ❌ ``adapter = MySQLAdapter(...)`` in a route handler
    ✅ ``adapter = get_adapter(settings.to_config())``
"""

from .base import DatabaseAdapter
from .mysql import MySQLAdapter
from .postgresql import PostgreSQLAdapter
from .registry import AdapterRegistry, adapter_registry, get_adapter
from .sqlite import SQLiteAdapter
from .types import BenignError, DatabaseConfig, DatabaseType

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    "BenignError",
    # Base class
    "DatabaseAdapter",
    # Implementations
    "SQLiteAdapter",
    "PostgreSQLAdapter",
    "MySQLAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
