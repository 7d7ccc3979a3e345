"""Database types and configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from focusflow.core.errors import ConfigError


class DatabaseType(str, Enum):
    """Supported database types."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


class BenignError(str, Enum):
    """Engine failures that mean "this DDL has already been applied".

    The migration runner skips a statement whose failure classifies as one
    of these and continues with the next statement.
    """

    DUPLICATE_COLUMN = "duplicate_column"
    DUPLICATE_INDEX = "duplicate_index"


DEFAULT_PORTS: dict[DatabaseType, int] = {
    DatabaseType.POSTGRESQL: 5432,
    DatabaseType.MYSQL: 3306,
}


@dataclass
class DatabaseConfig:
    """
    Configuration for database connection.

    Different fields are used by different database types. ``dsn`` takes
    precedence over the discrete host fields for PostgreSQL.
    """

    # Common
    db_type: DatabaseType = DatabaseType.SQLITE

    # SQLite
    path: str | None = None

    # PostgreSQL / MySQL
    dsn: str | None = None
    host: str = "localhost"
    port: int | None = None
    database: str = ""
    username: str | None = None
    password: str | None = None
    ssl: bool = False

    # Connection pool
    pool_size: int = 10

    # Options
    connect_timeout: int = 10

    # Extra options (driver-specific)
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def effective_port(self) -> int | None:
        return self.port if self.port is not None else DEFAULT_PORTS.get(self.db_type)

    def to_connection_string(self, *, mask_password: bool = False) -> str:
        """Generate connection string for the database type."""
        password = "***" if mask_password and self.password else (self.password or "")
        match self.db_type:
            case DatabaseType.SQLITE:
                return f"sqlite:///{self.path or ':memory:'}"
            case DatabaseType.POSTGRESQL:
                if self.dsn:
                    return self.dsn if not mask_password else _mask_dsn(self.dsn)
                return f"postgresql://{self.username or ''}:{password}@{self.host}:{self.effective_port}/{self.database}"
            case DatabaseType.MYSQL:
                return f"mysql://{self.username or ''}:{password}@{self.host}:{self.effective_port}/{self.database}"
            case _:
                raise ConfigError(f"Connection string not supported for: {self.db_type}")


def _mask_dsn(dsn: str) -> str:
    scheme, sep, rest = dsn.partition("://")
    if not sep or "@" not in rest:
        return dsn
    creds, _, host = rest.rpartition("@")
    user = creds.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


__all__ = [
    "DatabaseType",
    "BenignError",
    "DatabaseConfig",
    "DEFAULT_PORTS",
]
