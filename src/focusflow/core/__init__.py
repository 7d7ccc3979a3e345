"""FocusFlow Core -- the storage portability layer.

Manifesto:
    FocusFlow route handlers were written against a serverless relational
    contract (prepared statements, row sets, auto-increment ids, batches).
    The same handlers must run on an embedded SQLite file and on hosted
    PostgreSQL or MySQL without a line of engine-specific code.

Architecture::

    Layer 1 -- Types, Errors, Logging, Settings
        errors.py          Structured error hierarchy (FocusFlowError, QueryError ...)
        logging.py         structlog configuration
        settings.py        DatabaseSettings (pydantic-settings)
        result.py          ResultEnvelope / ResultMeta / ExecResult

    Layer 2 -- Uniform Interface
        protocols.py       Database / Statement protocols
        statement.py       PreparedStatement (immutable, incremental bind)
        coercion.py        Bound-value coercion per engine
        splitter.py        Statement splitting, read/write detection
        dialect.py         Per-engine SQL facts

    Layer 3 -- Engines
        adapters/          SQLite, PostgreSQL, MySQL adapters + registry
        connection.py      create_database() / open_database()

    Layer 4 -- Schema
        migrations/        Canonical migration translator + runner
"""

from focusflow.core.adapters import (
    BenignError,
    DatabaseAdapter,
    DatabaseConfig,
    DatabaseType,
    get_adapter,
)
from focusflow.core.coercion import UNSET, coerce_params, coerce_value
from focusflow.core.connection import create_database, open_database
from focusflow.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    FocusFlowError,
    IntegrityError,
    MigrationError,
    QueryError,
)
from focusflow.core.protocols import Database, Statement
from focusflow.core.result import ExecResult, ResultEnvelope, ResultMeta
from focusflow.core.settings import DatabaseSettings
from focusflow.core.statement import PreparedStatement

__all__ = [
    # Errors
    "FocusFlowError",
    "ConfigError",
    "DatabaseConnectionError",
    "QueryError",
    "IntegrityError",
    "MigrationError",
    # Interface
    "Database",
    "Statement",
    "PreparedStatement",
    "ResultEnvelope",
    "ResultMeta",
    "ExecResult",
    # Coercion
    "UNSET",
    "coerce_value",
    "coerce_params",
    # Engines
    "DatabaseType",
    "DatabaseConfig",
    "BenignError",
    "DatabaseAdapter",
    "get_adapter",
    "DatabaseSettings",
    "create_database",
    "open_database",
]
