"""Database factory: build the process-wide adapter from settings.

This is the **single entry point** for obtaining a database handle. The
server, the migration command and tests all go through
``create_database()`` / ``open_database()`` rather than constructing
adapter classes directly.

Usage
-----
::

    from focusflow.core.connection import open_database

    async with open_database() as db:
        task = await db.prepare("SELECT * FROM tasks WHERE id = ?").bind(7).first()

The context manager connects on entry and closes the handle (draining the
pool) on every exit path, including cancellation during shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from focusflow.core.adapters import DatabaseAdapter, DatabaseConfig, get_adapter
from focusflow.core.logging import get_logger
from focusflow.core.settings import DatabaseSettings

logger = get_logger(__name__)


def create_database(
    settings: DatabaseSettings | DatabaseConfig | None = None,
) -> DatabaseAdapter:
    """Create (but do not connect) the adapter for the configured engine."""
    if settings is None:
        settings = DatabaseSettings()
    config = settings if isinstance(settings, DatabaseConfig) else settings.to_config()
    adapter = get_adapter(config)
    logger.info(
        "database.selected",
        dialect=config.db_type.value,
        target=config.to_connection_string(mask_password=True),
    )
    return adapter


@asynccontextmanager
async def open_database(
    settings: DatabaseSettings | DatabaseConfig | None = None,
) -> AsyncIterator[DatabaseAdapter]:
    """Connected adapter scoped to a ``async with`` block."""
    db = create_database(settings)
    await db.connect()
    try:
        yield db
    finally:
        await db.close()


__all__ = [
    "create_database",
    "open_database",
]
