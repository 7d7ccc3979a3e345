"""Database adapter registry and factory.

Manifesto:
    Route handlers and the migration runner never hard-code adapter class
    names. The registry maps ``DatabaseType`` strings to adapter classes and
    the ``get_adapter()`` factory builds an instance from a
    ``DatabaseConfig`` (or keyword arguments). The choice is made once at
    startup and is fixed for the life of the process.

Features:
    - ``AdapterRegistry`` singleton with pre-registered defaults
    - ``register()`` for additional adapters
    - ``create_from_config()``: ``DatabaseConfig`` → adapter (not yet connected)
"""

from __future__ import annotations

from typing import Any

from focusflow.core.errors import ConfigError

from .base import DatabaseAdapter
from .mysql import MySQLAdapter
from .postgresql import PostgreSQLAdapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType


class AdapterRegistry:
    """
    Registry for database adapter factories.

    Pre-registered adapters:
    - ``sqlite``: :class:`SQLiteAdapter`
    - ``postgresql`` / ``postgres``: :class:`PostgreSQLAdapter`
    - ``mysql`` / ``mariadb``: :class:`MySQLAdapter`
    """

    def __init__(self):
        self._factories: dict[str, type[DatabaseAdapter]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        """Register default adapters."""
        self._factories["sqlite"] = SQLiteAdapter
        self._factories["postgresql"] = PostgreSQLAdapter
        self._factories["postgres"] = PostgreSQLAdapter  # Alias
        self._factories["mysql"] = MySQLAdapter
        self._factories["mariadb"] = MySQLAdapter  # Alias

    def register(self, name: str, adapter_class: type[DatabaseAdapter]) -> None:
        """Register an adapter factory."""
        self._factories[name.lower()] = adapter_class

    def _lookup(self, name: str) -> type[DatabaseAdapter]:
        name = name.lower()
        if name not in self._factories:
            raise ConfigError(f"Unknown database adapter: {name}")
        return self._factories[name]

    def create(self, name: str, **kwargs: Any) -> DatabaseAdapter:
        """Create an adapter by name."""
        return self._lookup(name)(**kwargs)

    def create_from_config(self, config: DatabaseConfig) -> DatabaseAdapter:
        """Create an adapter from a ``DatabaseConfig``."""
        return self._lookup(config.db_type.value).from_config(config)

    def list_adapters(self) -> list[str]:
        """List registered adapter names."""
        return sorted(self._factories.keys())


# Global registry
adapter_registry = AdapterRegistry()


def get_adapter(
    db_type: DatabaseType | DatabaseConfig | str,
    **kwargs: Any,
) -> DatabaseAdapter:
    """
    Get a database adapter by type or config.

    Usage:
        adapter = get_adapter(DatabaseType.SQLITE, path="focusflow.db")
        adapter = get_adapter("mysql", host="db", database="focusflow")
        adapter = get_adapter(settings.to_config())
    """
    if isinstance(db_type, DatabaseConfig):
        return adapter_registry.create_from_config(db_type)
    if isinstance(db_type, DatabaseType):
        name = db_type.value
    else:
        name = db_type

    return adapter_registry.create(name, **kwargs)


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
