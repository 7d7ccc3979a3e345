"""Database settings for FocusFlow.

Which engine backs a deployment is decided once, at process start, from the
environment (or a ``.env`` file). ``DatabaseSettings`` reads the variables
the deployment scripts already export and turns them into a
``DatabaseConfig`` for the adapter registry.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not on first query
    - **Environment-driven:** Reads plain env vars and ``.env``
    - **Extra ignore:** Unrelated env vars don't cause startup failures
    - **Sensible defaults:** A SQLite file in the working directory

Selection rules (first match wins):
    1. ``DB_TYPE`` names an engine (``sqlite``, ``postgresql``, ``mysql``)
    2. ``DATABASE_URL`` scheme (``postgresql://``, ``mysql://``, ``sqlite:///``)
    3. ``DB_USER``, ``DB_PASSWORD`` and ``DB_NAME`` all set → MySQL
    4. SQLite at ``DATABASE_PATH``

Examples:
    >>> settings = DatabaseSettings(database_url="postgresql://ff:pw@db:5432/focusflow")
    >>> settings.resolved_type
    <DatabaseType.POSTGRESQL: 'postgresql'>
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote, urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from focusflow.core.adapters.types import DatabaseConfig, DatabaseType
from focusflow.core.errors import ConfigError


class DatabaseSettings(BaseSettings):
    """Storage configuration read from the environment.

    Fields
    ──────
    db_type            : Explicit engine (``DB_TYPE``)
    db_host .. db_name : Discrete server connection fields
    db_ssl             : Require TLS to the server engine
    database_url       : Full connection URL (``DATABASE_URL``)
    database_path      : SQLite file (``DATABASE_PATH``)
    db_pool_size       : Server connection pool size
    migrations_dir     : Directory of canonical ``<n>.sql`` files
    log_level          : Structlog log level
    log_json           : JSON logs (``None`` = auto, JSON when not a TTY)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Engine selection ─────────────────────────────────────────
    db_type: DatabaseType | None = None

    # ── Server engines ───────────────────────────────────────────
    db_host: str = "localhost"
    db_port: int | None = None
    db_user: str | None = None
    db_password: str | None = None
    db_name: str | None = None
    db_ssl: bool = False
    database_url: str | None = None
    db_pool_size: int = Field(default=10, ge=1)
    db_connect_timeout: int = Field(default=10, ge=1)

    # ── Embedded engine ──────────────────────────────────────────
    database_path: str = "database.sqlite"

    # ── Migrations ───────────────────────────────────────────────
    migrations_dir: Path = Path("migrations")

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    @field_validator("db_type", mode="before")
    @classmethod
    def _normalize_db_type(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            if not value:
                return None
            if value == "postgres":
                return "postgresql"
            if value == "mariadb":
                return "mysql"
        return value

    @field_validator("database_url", "db_user", "db_password", "db_name", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def resolved_type(self) -> DatabaseType:
        """The engine this process will use."""
        if self.db_type is not None:
            return self.db_type
        if self.database_url:
            return _scheme_type(self.database_url)
        if self.db_user and self.db_password and self.db_name:
            return DatabaseType.MYSQL
        return DatabaseType.SQLITE

    def to_config(self) -> DatabaseConfig:
        """Build the ``DatabaseConfig`` for the selected engine."""
        db_type = self.resolved_type
        url = self.database_url
        if url and _scheme_type(url) != db_type:
            # URL belongs to another engine; use the discrete fields
            url = None

        match db_type:
            case DatabaseType.SQLITE:
                path = _sqlite_path(url) if url else self.database_path
                return DatabaseConfig(db_type=db_type, path=path)
            case DatabaseType.POSTGRESQL:
                return DatabaseConfig(
                    db_type=db_type,
                    dsn=url,
                    host=self.db_host,
                    port=self.db_port,
                    database=self.db_name or "",
                    username=self.db_user,
                    password=self.db_password,
                    ssl=self.db_ssl,
                    pool_size=self.db_pool_size,
                    connect_timeout=self.db_connect_timeout,
                )
            case DatabaseType.MYSQL:
                if url:
                    return _mysql_config_from_url(url, self)
                return DatabaseConfig(
                    db_type=db_type,
                    host=self.db_host,
                    port=self.db_port,
                    database=self.db_name or "",
                    username=self.db_user or "root",
                    password=self.db_password or "",
                    ssl=self.db_ssl,
                    pool_size=self.db_pool_size,
                    connect_timeout=self.db_connect_timeout,
                )
            case _:
                raise ConfigError(f"Unsupported database type: {db_type}")


def _scheme_type(url: str) -> DatabaseType:
    scheme = url.split("://", 1)[0].split("+", 1)[0].lower() if "://" in url else ""
    if scheme in ("postgresql", "postgres"):
        return DatabaseType.POSTGRESQL
    if scheme in ("mysql", "mariadb"):
        return DatabaseType.MYSQL
    if scheme == "sqlite":
        return DatabaseType.SQLITE
    raise ConfigError(f"Unsupported DATABASE_URL scheme: {url.split('://', 1)[0]!r}")


def _sqlite_path(url: str) -> str:
    path = url.split("://", 1)[1]
    if path.startswith("/"):
        path = path[1:]
    return path or ":memory:"


def _mysql_config_from_url(url: str, settings: DatabaseSettings) -> DatabaseConfig:
    parts = urlsplit(url)
    return DatabaseConfig(
        db_type=DatabaseType.MYSQL,
        host=parts.hostname or settings.db_host,
        port=parts.port or settings.db_port,
        database=parts.path.lstrip("/") or settings.db_name or "",
        username=unquote(parts.username) if parts.username else settings.db_user or "root",
        password=unquote(parts.password) if parts.password else settings.db_password or "",
        ssl=settings.db_ssl,
        pool_size=settings.db_pool_size,
        connect_timeout=settings.db_connect_timeout,
    )


__all__ = [
    "DatabaseSettings",
]
