"""
Tests for the migration runner against a real SQLite database.
"""

from unittest.mock import AsyncMock, patch

import pytest

from focusflow.core.adapters import BenignError
from focusflow.core.errors import MigrationError
from focusflow.core.migrations import (
    MigrationResult,
    MigrationRunner,
    MigrationState,
    discover_migrations,
)


async def _count(db, sql: str) -> int:
    return await db.prepare(sql).first("n")


class TestDiscovery:
    def test_numeric_order_and_exclusions(self, migrations_dir):
        files = discover_migrations(migrations_dir)
        assert [f.number for f in files] == [1, 2, 10]
        assert [f.name for f in files] == ["1.sql", "2.sql", "10.sql"]

    def test_down_files_excluded(self, migrations_dir):
        (migrations_dir / "4.down.sql").write_text("DROP TABLE labels;")
        (migrations_dir / "5_down.sql").write_text("DROP TABLE labels;")
        assert [f.number for f in discover_migrations(migrations_dir)] == [1, 2, 10]

    def test_missing_directory(self, tmp_path):
        assert discover_migrations(tmp_path / "nope") == []


class TestApplyPending:
    @pytest.mark.asyncio
    async def test_applies_in_order(self, sqlite_db, migrations_dir):
        runner = MigrationRunner(sqlite_db, migrations_dir)
        result = await runner.apply_pending()

        assert result.success
        assert result.applied == [1, 2, 10]
        assert result.skipped == []
        assert await _count(sqlite_db, "SELECT COUNT(*) AS n FROM _migrations") == 3
        row = await sqlite_db.prepare('SELECT "repeat" FROM tasks').raw(column_names=True)
        assert row == [("repeat",)]

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, sqlite_db, migrations_dir):
        runner = MigrationRunner(sqlite_db, migrations_dir)
        await runner.apply_pending()
        result = await runner.apply_pending()

        assert result.success
        assert result.applied == []
        assert result.skipped == [1, 2, 10]
        assert await _count(sqlite_db, "SELECT COUNT(*) AS n FROM _migrations") == 3

    @pytest.mark.asyncio
    async def test_existing_column_is_skipped(self, sqlite_db, migrations_dir):
        await sqlite_db.exec(
            'CREATE TABLE tasks (id INTEGER PRIMARY KEY, title TEXT, created_at DATETIME, "repeat" TEXT)'
        )
        result = await MigrationRunner(sqlite_db, migrations_dir).apply_pending()

        assert result.success
        assert result.applied == [1, 2, 10]
        assert len(result.skipped_statements) == 1
        skipped = result.skipped_statements[0]
        assert skipped.migration_number == 2
        assert skipped.reason == BenignError.DUPLICATE_COLUMN
        assert "ADD COLUMN" in skipped.sql

    @pytest.mark.asyncio
    async def test_existing_index_is_not_an_error(self, sqlite_db, tmp_path):
        root = tmp_path / "m"
        root.mkdir()
        (root / "1.sql").write_text("CREATE TABLE t (a TEXT);")
        (root / "2.sql").write_text("CREATE INDEX idx_a ON t(a);")
        await sqlite_db.exec("CREATE TABLE t (a TEXT); CREATE INDEX idx_a ON t(a)")

        result = await MigrationRunner(sqlite_db, root).apply_pending()
        assert result.success
        assert result.applied == [1, 2]

    @pytest.mark.asyncio
    async def test_failure_stops_the_run(self, sqlite_db, migrations_dir):
        (migrations_dir / "2.sql").write_text("CREATE TABLOID broken (id INTEGER);")
        runner = MigrationRunner(sqlite_db, migrations_dir)
        result = await runner.apply_pending()

        assert not result.success
        assert result.applied == [1]
        assert result.failed == 2
        assert result.error.context.migration_number == 2
        assert await _count(sqlite_db, "SELECT COUNT(*) AS n FROM _migrations") == 1

        with pytest.raises(MigrationError) as exc_info:
            result.raise_for_error()
        assert exc_info.value.migration_number == 2

        states = {s.number: s.state for s in await runner.status()}
        assert states == {
            1: MigrationState.APPLIED,
            2: MigrationState.FAILED,
            10: MigrationState.PENDING,
        }

    @pytest.mark.asyncio
    async def test_fixed_migration_applies_on_next_run(self, sqlite_db, migrations_dir):
        original = (migrations_dir / "2.sql").read_text()
        (migrations_dir / "2.sql").write_text("CREATE TABLOID broken (id INTEGER);")
        runner = MigrationRunner(sqlite_db, migrations_dir)
        await runner.apply_pending()

        (migrations_dir / "2.sql").write_text(original)
        result = await runner.apply_pending()
        assert result.success
        assert result.applied == [2, 10]

    @pytest.mark.asyncio
    async def test_already_recorded_row_is_tolerated(self, sqlite_db, migrations_dir):
        await MigrationRunner(sqlite_db, migrations_dir).apply_pending()

        runner = MigrationRunner(sqlite_db, migrations_dir)
        with patch.object(runner, "get_applied", AsyncMock(return_value=[])):
            result = await runner.apply_pending()

        assert result.success
        assert result.applied == [1, 2, 10]
        assert await _count(sqlite_db, "SELECT COUNT(*) AS n FROM _migrations") == 3

    def test_raise_for_error_noop_on_success(self):
        MigrationResult(applied=[1]).raise_for_error()


class TestDryRun:
    @pytest.mark.asyncio
    async def test_nothing_written(self, sqlite_db, migrations_dir):
        result = await MigrationRunner(sqlite_db, migrations_dir).apply_pending(dry_run=True)

        assert result.dry_run
        assert result.applied == []
        assert list(result.planned) == [1, 2, 10]
        assert result.planned[1][0].startswith("CREATE TABLE IF NOT EXISTS tasks")
        tables = await sqlite_db.prepare(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?"
        ).bind("_migrations").all()
        assert tables.rows == []

    @pytest.mark.asyncio
    async def test_only_pending_planned(self, sqlite_db, migrations_dir):
        runner = MigrationRunner(sqlite_db, migrations_dir)
        await runner.apply_pending()
        (migrations_dir / "11.sql").write_text("CREATE INDEX idx_labels_name ON labels(name);")

        result = await runner.apply_pending(dry_run=True)
        assert list(result.planned) == [11]
        assert result.skipped == [1, 2, 10]


class TestStatus:
    @pytest.mark.asyncio
    async def test_before_and_after(self, sqlite_db, migrations_dir):
        runner = MigrationRunner(sqlite_db, migrations_dir)

        assert [m.number for m in await runner.get_pending()] == [1, 2, 10]
        assert {s.state for s in await runner.status()} == {MigrationState.PENDING}

        await runner.apply_pending()

        assert await runner.get_pending() == []
        statuses = await runner.status()
        assert all(s.state == MigrationState.APPLIED for s in statuses)
        assert all(s.applied_at is not None for s in statuses)
        applied = await runner.get_applied()
        assert [r.migration_number for r in applied] == [1, 2, 10]


class TestCanonicalMigrations:
    @pytest.mark.asyncio
    async def test_repository_migrations_apply_twice(self, sqlite_db, canonical_migrations):
        runner = MigrationRunner(sqlite_db, canonical_migrations)
        first = await runner.apply_pending()
        assert first.success, first.error
        assert first.applied == [1, 2, 3, 4, 5, 6, 7]

        second = await runner.apply_pending()
        assert second.applied == []

        name = await sqlite_db.prepare(
            "SELECT app_name FROM white_label_settings WHERE id = ?"
        ).bind(1).first("app_name")
        assert name == "FocusFlow"
        assert await _count(sqlite_db, "SELECT COUNT(*) AS n FROM white_label_settings") == 1
