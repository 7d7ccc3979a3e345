"""SQL migration runner.

Reads canonical ``<n>.sql`` files from the migrations directory, tracks
applied migrations in the ``_migrations`` table, and applies pending ones in
ascending numeric order. Each file is translated for the connected engine
and executed statement by statement, so a benign failure (a column or index
that already exists) skips only the statement that raised it.

Lifecycle of one migration::

    PENDING ──► APPLYING ──► APPLIED
                    │
                    └──────► FAILED   (run aborted, later files stay PENDING)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from focusflow.core.adapters.base import DatabaseAdapter
from focusflow.core.adapters.types import BenignError
from focusflow.core.errors import FocusFlowError, IntegrityError, MigrationError
from focusflow.core.logging import LogContext, get_logger

from .translator import MigrationTranslator, SchemaCatalog

logger = get_logger(__name__)

MIGRATIONS_TABLE = "_migrations"
MIGRATION_FILE_RE = re.compile(r"^(\d+)\.sql$")


class MigrationState(str, Enum):
    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(frozen=True)
class MigrationFile:
    """A canonical migration file, identified by its number."""

    number: int
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass
class MigrationRecord:
    """Record of a single applied migration."""

    id: int
    migration_number: int
    applied_at: datetime | str | None


@dataclass
class MigrationStatus:
    number: int
    state: MigrationState
    applied_at: datetime | str | None = None


@dataclass
class SkippedStatement:
    """A statement skipped because its failure was benign."""

    migration_number: int
    sql: str
    reason: BenignError


@dataclass
class MigrationResult:
    """Result of a migration run."""

    applied: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    skipped_statements: list[SkippedStatement] = field(default_factory=list)
    failed: int | None = None
    error: FocusFlowError | None = None
    dry_run: bool = False
    # Translated statements per migration (populated on dry runs)
    planned: dict[int, list[str]] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.failed is None

    def raise_for_error(self) -> None:
        """Raise ``MigrationError`` if the run stopped on a failure."""
        if self.failed is None:
            return
        message = f"Migration {self.failed} failed: {self.error}"
        raise MigrationError(message, cause=self.error).with_context(
            migration_number=self.failed,
            engine_code=self.error.engine_code if self.error else None,
        )


def discover_migrations(directory: Path | str) -> list[MigrationFile]:
    """Return canonical migration files sorted by number.

    Only ``<n>.sql`` names count; anything containing ``down`` is excluded.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []
    files = []
    for path in directory.iterdir():
        if "down" in path.name:
            continue
        match = MIGRATION_FILE_RE.match(path.name)
        if match:
            files.append(MigrationFile(number=int(match.group(1)), path=path))
    return sorted(files, key=lambda f: f.number)


class MigrationRunner:
    """Applies canonical SQL migrations to a connected adapter.

    Parameters
    ----------
    db
        A connected ``DatabaseAdapter``.
    migrations_dir
        Directory containing numbered ``.sql`` files.

    Example::

        async with open_database(settings) as db:
            runner = MigrationRunner(db, "migrations")
            result = await runner.apply_pending()
            result.raise_for_error()
    """

    def __init__(self, db: DatabaseAdapter, migrations_dir: Path | str) -> None:
        self._db = db
        self._migrations_dir = Path(migrations_dir)
        self._translator = MigrationTranslator(db.dialect)
        self._failed: dict[int, FocusFlowError] = {}

    @property
    def translator(self) -> MigrationTranslator:
        return self._translator

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def apply_pending(self, *, dry_run: bool = False) -> MigrationResult:
        """Apply all pending migrations in ascending numeric order.

        With ``dry_run`` nothing is written: the bookkeeping table is not
        created and the translated statements are returned in ``planned``.
        """
        result = MigrationResult(dry_run=dry_run)
        if dry_run:
            applied = await self._applied_numbers_if_present()
        else:
            await self._ensure_migrations_table()
            applied = {r.migration_number for r in await self.get_applied()}

        catalog = SchemaCatalog()
        for migration in self.discover():
            sql = migration.read()
            if migration.number in applied:
                catalog.observe_script(sql)
                result.skipped.append(migration.number)
                logger.debug("migration.already_applied", migration=migration.number)
                continue

            statements = self._translator.translate(sql, catalog)
            if dry_run:
                result.planned[migration.number] = statements
                continue

            with LogContext(migration=migration.number, dialect=self._db.dialect.name):
                ok = await self._apply(migration, statements, result)
            if not ok:
                break

        if not dry_run:
            logger.info(
                "migration.run_complete",
                applied=len(result.applied),
                skipped=len(result.skipped),
                failed=result.failed,
            )
        return result

    async def get_applied(self) -> list[MigrationRecord]:
        """Return already-applied migrations, ordered by number."""
        envelope = await self._db.prepare(
            f"SELECT id, migration_number, applied_at FROM {MIGRATIONS_TABLE} "
            "ORDER BY migration_number"
        ).all()
        return [
            MigrationRecord(
                id=row["id"],
                migration_number=int(row["migration_number"]),
                applied_at=row["applied_at"],
            )
            for row in envelope.rows or []
        ]

    async def get_pending(self) -> list[MigrationFile]:
        """Return migration files not yet applied."""
        applied = await self._applied_numbers_if_present()
        return [m for m in self.discover() if m.number not in applied]

    async def status(self) -> list[MigrationStatus]:
        """State of every canonical migration file."""
        records: dict[int, MigrationRecord] = {}
        if await self._table_exists():
            records = {r.migration_number: r for r in await self.get_applied()}
        statuses = []
        for migration in self.discover():
            record = records.get(migration.number)
            if record is not None:
                statuses.append(
                    MigrationStatus(migration.number, MigrationState.APPLIED, record.applied_at)
                )
            elif migration.number in self._failed:
                statuses.append(MigrationStatus(migration.number, MigrationState.FAILED))
            else:
                statuses.append(MigrationStatus(migration.number, MigrationState.PENDING))
        return statuses

    def discover(self) -> list[MigrationFile]:
        return discover_migrations(self._migrations_dir)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _apply(
        self,
        migration: MigrationFile,
        statements: list[str],
        result: MigrationResult,
    ) -> bool:
        state = MigrationState.APPLYING
        logger.info("migration.applying", state=state.value, statements=len(statements))
        for statement in statements:
            try:
                await self._db.dispatch(statement, ())
            except FocusFlowError as exc:
                kind = self._db.classify_error(exc)
                if kind is None:
                    return self._fail(migration, exc, result)
                result.skipped_statements.append(
                    SkippedStatement(migration.number, statement, kind)
                )
                logger.info(
                    "migration.statement_skipped",
                    reason=kind.value,
                    engine_code=exc.engine_code,
                    sql=statement,
                )

        try:
            await self._record_migration(migration.number)
        except IntegrityError:
            # Another runner recorded it first
            logger.warning("migration.already_recorded")
        except FocusFlowError as exc:
            return self._fail(migration, exc, result)

        self._failed.pop(migration.number, None)
        result.applied.append(migration.number)
        logger.info("migration.applied", state=MigrationState.APPLIED.value)
        return True

    def _fail(self, migration: MigrationFile, exc: FocusFlowError, result: MigrationResult) -> bool:
        exc.with_context(migration_number=migration.number)
        self._failed[migration.number] = exc
        result.failed = migration.number
        result.error = exc
        logger.error(
            "migration.failed",
            state=MigrationState.FAILED.value,
            error=exc.message,
            engine_code=exc.engine_code,
            sql=exc.context.sql,
        )
        return False

    async def _ensure_migrations_table(self) -> None:
        """Create the ``_migrations`` table if it doesn't exist."""
        dialect = self._db.dialect
        await self._db.exec(
            f"""
            CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
                id {dialect.auto_increment()},
                migration_number INTEGER UNIQUE NOT NULL,
                applied_at {dialect.timestamp_type()} DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    async def _table_exists(self) -> bool:
        row = await self._db.prepare(self._db.dialect.table_exists_query()).bind(
            MIGRATIONS_TABLE
        ).first()
        return row is not None

    async def _applied_numbers_if_present(self) -> set[int]:
        if not await self._table_exists():
            return set()
        return {r.migration_number for r in await self.get_applied()}

    async def _record_migration(self, number: int) -> Any:
        """Insert a record into ``_migrations``."""
        return await self._db.prepare(
            f"INSERT INTO {MIGRATIONS_TABLE} (migration_number) VALUES (?)"
        ).bind(number).run()


__all__ = [
    "MIGRATIONS_TABLE",
    "MigrationState",
    "MigrationFile",
    "MigrationRecord",
    "MigrationStatus",
    "SkippedStatement",
    "MigrationResult",
    "MigrationRunner",
    "discover_migrations",
]
