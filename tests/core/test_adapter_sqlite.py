"""
Tests for the SQLite adapter and the uniform statement interface.

These run against a real in-memory database.
"""

from datetime import datetime

import pytest

from focusflow.core.adapters import BenignError, DatabaseType, SQLiteAdapter
from focusflow.core.coercion import UNSET
from focusflow.core.errors import DatabaseConnectionError, IntegrityError, QueryError
from focusflow.core.protocols import Database, Statement


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_connect_and_close(self):
        adapter = SQLiteAdapter()
        assert not adapter.is_connected
        await adapter.connect()
        assert adapter.is_connected
        await adapter.close()
        assert not adapter.is_connected

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        adapter = SQLiteAdapter()
        await adapter.connect()
        await adapter.close()
        await adapter.close()

    @pytest.mark.asyncio
    async def test_context_manager(self):
        async with SQLiteAdapter() as adapter:
            assert adapter.is_connected
            assert await adapter.prepare("SELECT 1 AS one").first("one") == 1
        assert not adapter.is_connected

    @pytest.mark.asyncio
    async def test_dispatch_requires_connection(self):
        adapter = SQLiteAdapter()
        with pytest.raises(DatabaseConnectionError):
            await adapter.prepare("SELECT 1").all()

    @pytest.mark.asyncio
    async def test_ping(self, sqlite_db):
        assert await sqlite_db.ping() is True
        await sqlite_db.close()
        assert await sqlite_db.ping() is False

    @pytest.mark.asyncio
    async def test_file_database_persists(self, tmp_path):
        path = str(tmp_path / "focus.sqlite")
        async with SQLiteAdapter(path) as db:
            await db.exec("CREATE TABLE t (v TEXT); INSERT INTO t (v) VALUES ('kept')")
        async with SQLiteAdapter(path) as db:
            assert await db.prepare("SELECT v FROM t").first("v") == "kept"

    def test_satisfies_protocols(self):
        adapter = SQLiteAdapter()
        assert isinstance(adapter, Database)
        assert isinstance(adapter.prepare("SELECT 1"), Statement)
        assert adapter.db_type == DatabaseType.SQLITE
        assert "sqlite" in repr(adapter)


class TestStatements:
    @pytest.mark.asyncio
    async def test_run_insert(self, tasks_db):
        result = await tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("Write").run()
        assert result.success is True
        assert result.rows is None
        assert result.meta.changes == 1
        assert result.meta.rows_written == 1
        assert result.meta.inserted_id == 1

        second = await tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("Read").run()
        assert second.meta.inserted_id == 2

    @pytest.mark.asyncio
    async def test_run_update_has_no_inserted_id(self, tasks_db):
        await tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("Write").run()
        result = await tasks_db.prepare("UPDATE tasks SET done = ? WHERE id = ?").bind(1, 1).run()
        assert result.meta.changes == 1
        assert result.meta.inserted_id is None

    @pytest.mark.asyncio
    async def test_ignored_insert_has_no_inserted_id(self, sqlite_db):
        await sqlite_db.exec(
            "CREATE TABLE a (id INTEGER PRIMARY KEY, k TEXT UNIQUE);"
            "CREATE TABLE b (id INTEGER PRIMARY KEY, v INTEGER)"
        )
        await sqlite_db.prepare("INSERT INTO a (k) VALUES (?)").bind("x").run()
        for v in range(5):
            await sqlite_db.prepare("INSERT INTO b (v) VALUES (?)").bind(v).run()

        result = await sqlite_db.prepare("INSERT OR IGNORE INTO a (k) VALUES (?)").bind("x").run()
        assert result.meta.changes == 0
        assert result.meta.inserted_id is None

    @pytest.mark.asyncio
    async def test_all(self, tasks_db):
        await tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("Write").run()
        result = await tasks_db.prepare("SELECT * FROM tasks").all()
        assert result.success is True
        assert result.rows == [{"id": 1, "title": "Write", "done": 0, "due_at": None}]
        assert result.meta.rows_read == 1

    @pytest.mark.asyncio
    async def test_all_empty(self, tasks_db):
        result = await tasks_db.prepare("SELECT * FROM tasks").all()
        assert result.rows == []

    @pytest.mark.asyncio
    async def test_first(self, tasks_db):
        await tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("Write").run()
        stmt = tasks_db.prepare("SELECT id, title FROM tasks WHERE id = ?").bind(1)
        assert await stmt.first() == {"id": 1, "title": "Write"}
        assert await stmt.first("title") == "Write"

    @pytest.mark.asyncio
    async def test_first_no_rows(self, tasks_db):
        assert await tasks_db.prepare("SELECT * FROM tasks").first() is None
        assert await tasks_db.prepare("SELECT * FROM tasks").first("title") is None

    @pytest.mark.asyncio
    async def test_first_missing_column(self, tasks_db):
        await tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("Write").run()
        with pytest.raises(QueryError, match="nope"):
            await tasks_db.prepare("SELECT * FROM tasks").first("nope")

    @pytest.mark.asyncio
    async def test_raw(self, tasks_db):
        await tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("Write").run()
        stmt = tasks_db.prepare("SELECT id, title FROM tasks")
        assert await stmt.raw() == [(1, "Write")]
        assert await stmt.raw(column_names=True) == [("id", "title"), (1, "Write")]

    @pytest.mark.asyncio
    async def test_raw_column_names_without_rows(self, tasks_db):
        rows = await tasks_db.prepare("SELECT id, title FROM tasks").raw(column_names=True)
        assert rows == [("id", "title")]

    @pytest.mark.asyncio
    async def test_bind_is_immutable_and_incremental(self, tasks_db):
        base = tasks_db.prepare("SELECT * FROM tasks WHERE id = ? AND title = ?")
        one = base.bind(1)
        two = one.bind("Write")
        assert base.params == ()
        assert one.params == (1,)
        assert two.params == (1, "Write")

    @pytest.mark.asyncio
    async def test_bound_values_are_coerced(self, tasks_db):
        stmt = tasks_db.prepare("INSERT INTO tasks (title, done, due_at) VALUES (?, ?, ?)")
        stmt = stmt.bind("Write", float("nan"), datetime(2026, 1, 19, 12, 0, 0))
        assert stmt.params == ("Write", 0, "2026-01-19T12:00:00")
        await stmt.run()
        row = await tasks_db.prepare("SELECT done, due_at FROM tasks").first()
        assert row == {"done": 0, "due_at": "2026-01-19T12:00:00"}

    @pytest.mark.asyncio
    async def test_unset_binds_null(self, tasks_db):
        await tasks_db.prepare("INSERT INTO tasks (title, due_at) VALUES (?, ?)").bind("x", UNSET).run()
        assert await tasks_db.prepare("SELECT due_at FROM tasks").first("due_at") is None

    def test_prepare_does_no_io(self):
        stmt = SQLiteAdapter().prepare("SELECT * FROM missing")
        assert stmt.query == "SELECT * FROM missing"


class TestBatchAndExec:
    @pytest.mark.asyncio
    async def test_batch_preserves_order(self, tasks_db):
        results = await tasks_db.batch(
            [
                tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("a"),
                tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("b"),
                tasks_db.prepare("SELECT title FROM tasks ORDER BY id"),
            ]
        )
        assert len(results) == 3
        assert results[0].rows is None
        assert results[1].meta.inserted_id == 2
        assert results[2].rows == [{"title": "a"}, {"title": "b"}]

    @pytest.mark.asyncio
    async def test_batch_failure_keeps_earlier_writes(self, tasks_db):
        with pytest.raises(IntegrityError):
            await tasks_db.batch(
                [
                    tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("a"),
                    tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind(None),
                ]
            )
        assert await tasks_db.prepare("SELECT COUNT(*) AS n FROM tasks").first("n") == 1

    @pytest.mark.asyncio
    async def test_exec_counts_statements(self, sqlite_db):
        result = await sqlite_db.exec(
            "CREATE TABLE a (id INTEGER);\n-- comment; still a comment\nINSERT INTO a VALUES (1);"
        )
        assert result.count == 2
        assert len(result.results) == 2
        assert result.results[1].meta.changes == 1


class TestErrors:
    @pytest.mark.asyncio
    async def test_constraint_violation_is_integrity_error(self, tasks_db):
        with pytest.raises(IntegrityError) as exc_info:
            await tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind(None).run()
        error = exc_info.value
        assert error.context.dialect == "sqlite"
        assert "INSERT INTO tasks" in error.context.sql
        assert error.context.params == (None,)

    @pytest.mark.asyncio
    async def test_syntax_error_is_query_error(self, sqlite_db):
        with pytest.raises(QueryError) as exc_info:
            await sqlite_db.prepare("SELEC 1").all()
        assert not isinstance(exc_info.value, IntegrityError)
        assert exc_info.value.cause is not None

    @pytest.mark.asyncio
    async def test_classify_duplicate_column(self, tasks_db):
        with pytest.raises(QueryError) as exc_info:
            await tasks_db.exec("ALTER TABLE tasks ADD COLUMN title TEXT")
        assert tasks_db.classify_error(exc_info.value) == BenignError.DUPLICATE_COLUMN

    @pytest.mark.asyncio
    async def test_classify_duplicate_index(self, tasks_db):
        await tasks_db.exec("CREATE INDEX idx_title ON tasks(title)")
        with pytest.raises(QueryError) as exc_info:
            await tasks_db.exec("CREATE INDEX idx_title ON tasks(title)")
        assert tasks_db.classify_error(exc_info.value) == BenignError.DUPLICATE_INDEX

    @pytest.mark.asyncio
    async def test_classify_real_error(self, sqlite_db):
        with pytest.raises(QueryError) as exc_info:
            await sqlite_db.exec("SELECT * FROM missing")
        assert sqlite_db.classify_error(exc_info.value) is None


class TestEnvelope:
    @pytest.mark.asyncio
    async def test_wire_shape(self, tasks_db):
        write = await tasks_db.prepare("INSERT INTO tasks (title) VALUES (?)").bind("a").run()
        read = await tasks_db.prepare("SELECT title FROM tasks").all()

        write_dict = write.to_dict()
        assert set(write_dict) == {"success", "meta"}
        assert write_dict["meta"]["last_row_id"] == 1
        assert write_dict["meta"]["changes"] == 1

        read_dict = read.to_dict()
        assert set(read_dict) == {"success", "meta", "results"}
        assert read_dict["results"] == [{"title": "a"}]
        assert read_dict["meta"]["duration"] >= 0

    @pytest.mark.asyncio
    async def test_exec_wire_shape(self, tasks_db):
        result = await tasks_db.exec(
            "INSERT INTO tasks (title) VALUES ('a'); INSERT INTO tasks (title) VALUES ('b')"
        )
        assert result.success is True
        assert result.meta.changes == 2
        assert result.meta.rows_written == 2
        assert result.meta.inserted_id is None
        assert result.duration_ms == result.meta.duration_ms

        exec_dict = result.to_dict()
        assert set(exec_dict) == {"success", "meta", "results", "count"}
        assert exec_dict["count"] == 2
        assert exec_dict["meta"]["changes"] == 2
        assert [r["meta"]["last_row_id"] for r in exec_dict["results"]] == [1, 2]
