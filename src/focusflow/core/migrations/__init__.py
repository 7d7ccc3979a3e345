"""Schema migrations for FocusFlow.

Manifesto:
    The schema is written once, as canonical SQLite-dialect ``<n>.sql``
    files, and must come up identically on every engine. The translator
    rewrites each file for the connected engine; the runner applies
    pending files idempotently, tracking them in the ``_migrations`` table.

Modules
-------
translator    MigrationTranslator (per-rule rewrites) + SchemaCatalog
runner        MigrationRunner with apply_pending() / status() / get_pending()
"""

from focusflow.core.migrations.runner import (
    MigrationFile,
    MigrationRecord,
    MigrationResult,
    MigrationRunner,
    MigrationState,
    MigrationStatus,
    discover_migrations,
)
from focusflow.core.migrations.translator import (
    MYSQL_INDEX_PREFIX_LENGTH,
    MigrationTranslator,
    SchemaCatalog,
)

__all__ = [
    "MigrationRunner",
    "MigrationState",
    "MigrationFile",
    "MigrationRecord",
    "MigrationStatus",
    "MigrationResult",
    "discover_migrations",
    "MigrationTranslator",
    "SchemaCatalog",
    "MYSQL_INDEX_PREFIX_LENGTH",
]
