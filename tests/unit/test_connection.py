"""Unit tests for administrative and scoped connections over a recording engine"""

from contextlib import asynccontextmanager
from typing import Optional

import pytest

from db_console.adapters import create_adapter
from db_console.core.connection import DatabaseConnection
from db_console.core.executor import QueryExecutor
from db_console.exceptions import ConnectionFailure
from db_console.models.config import ConnectionConfig


class NoRows:
    returns_rows = False
    rowcount = -1


class RecordingConn:
    """Logs transaction boundaries and statements in the order they happen."""

    def __init__(self, log: list[str]):
        self.log = log
        self.in_transaction = False
        self.closed = 0

    @asynccontextmanager
    async def begin(self):
        self.log.append("BEGIN")
        self.in_transaction = True
        try:
            yield self
        except BaseException:
            self.log.append("ROLLBACK")
            raise
        else:
            self.log.append("COMMIT")
        finally:
            self.in_transaction = False

    async def exec_driver_sql(self, sql, execution_options=None):
        self.log.append(f"{sql} (in_tx={self.in_transaction})")
        return NoRows()

    async def close(self):
        self.closed += 1


class RecordingEngine:
    def __init__(self, log: list[str], connect_error: Optional[Exception] = None):
        self.conn = RecordingConn(log)
        self.connect_error = connect_error
        self.disposed = 0

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        return self.conn

    async def dispose(self):
        self.disposed += 1


@pytest.fixture
def log() -> list[str]:
    return []


@pytest.fixture
def build(monkeypatch: pytest.MonkeyPatch, log):
    """Live-looking DatabaseConnection whose engines are RecordingEngines."""

    def _build(dialect="postgresql", connect_error=None):
        config = ConnectionConfig(dialect=dialect, user="admin")
        connection = DatabaseConnection(config=config)
        connection.adapter = create_adapter(dialect)
        connection.engine = RecordingEngine(log)
        connection.created = []

        def fake_create_engine(database, pooled, autocommit=False):
            engine = RecordingEngine(log, connect_error)
            connection.created.append((database, autocommit, engine))
            return engine

        monkeypatch.setattr(connection, "_create_engine", fake_create_engine)
        return connection

    return _build


class TestScoped:
    async def test_transactional_block_commits(self, build, log):
        connection = build()

        async with connection.scoped("shop") as conn:
            await conn.exec_driver_sql("ALTER TABLE t ADD COLUMN c INT")

        assert log == [
            "BEGIN",
            "ALTER TABLE t ADD COLUMN c INT (in_tx=True)",
            "COMMIT",
        ]
        database, autocommit, engine = connection.created[0]
        assert (database, autocommit) == ("shop", False)
        assert engine.conn.closed == 1
        assert engine.disposed == 1

    async def test_autocommit_block_sends_no_begin(self, build, log):
        connection = build()

        async with connection.scoped("shop", transactional=False) as conn:
            await conn.exec_driver_sql("VACUUM")

        assert log == ["VACUUM (in_tx=False)"]
        assert connection.created[0][1] is True

    async def test_error_in_block_releases_everything(self, build, log):
        connection = build()

        with pytest.raises(ValueError):
            async with connection.scoped("shop"):
                raise ValueError("boom")

        assert log == ["BEGIN", "ROLLBACK"]
        engine = connection.created[0][2]
        assert engine.conn.closed == 1
        assert engine.disposed == 1

    async def test_connect_failure_disposes_engine(self, build):
        connection = build(connect_error=OSError("connection refused"))

        with pytest.raises(ConnectionFailure) as exc_info:
            async with connection.scoped("shop"):
                pass

        assert exc_info.value.context["database"] == "shop"
        engine = connection.created[0][2]
        assert engine.conn.closed == 0
        assert engine.disposed == 1

    async def test_requires_initialized_engine(self, build):
        connection = build()
        connection.engine = None
        with pytest.raises(RuntimeError):
            async with connection.scoped("shop"):
                pass


class TestAdmin:
    async def test_error_in_block_closes_connection(self, build):
        connection = build()

        with pytest.raises(ValueError):
            async with connection.admin():
                raise ValueError("boom")

        assert connection.engine.conn.closed == 1

    async def test_connect_failure(self, build):
        connection = build()
        connection.engine.connect_error = OSError("connection refused")

        with pytest.raises(ConnectionFailure):
            async with connection.admin():
                pass


class TestRawQueryOnPostgres:
    @pytest.mark.parametrize(
        "sql",
        [
            "CREATE DATABASE other",
            "VACUUM items",
            "CREATE INDEX CONCURRENTLY i ON t (c)",
        ],
    )
    async def test_statement_runs_outside_a_transaction(self, build, log, sql):
        connection = build()
        executor = QueryExecutor(connection, connection.adapter)

        result = await executor.execute("shop", sql)

        assert result.success
        assert log == [f"{sql} (in_tx=False)"]
        assert connection.created[0][:2] == ("shop", True)
