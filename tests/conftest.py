"""Pytest configuration and shared fixtures for db-console tests"""

import os
from contextlib import asynccontextmanager
from typing import Optional

import pytest
from dotenv import load_dotenv
from sqlalchemy.exc import DBAPIError

from db_console.adapters import MySQLAdapter, PostgresAdapter
from db_console.models.config import ConnectionConfig
from db_console.models.table import TableStructure

# Load environment variables
load_dotenv()


# ==================== Fakes ====================


class FakeConn:
    """Records raw statements; raises a driver error on a chosen one."""

    def __init__(self, fail_on: Optional[str] = None, orig: Optional[Exception] = None):
        self.fail_on = fail_on
        self.orig = orig or Exception("statement rejected")
        self.executed: list[str] = []

    async def exec_driver_sql(self, sql, execution_options=None):
        if self.fail_on is not None and self.fail_on in sql:
            raise DBAPIError(sql, None, self.orig)
        self.executed.append(sql)
        return None


class FakeConnection:
    """Stands in for DatabaseConnection, handing out one FakeConn."""

    def __init__(self, conn: FakeConn):
        self.conn = conn
        self.scoped_databases: list[str] = []
        self.scoped_transactional: list[bool] = []
        self.admin_calls = 0

    @asynccontextmanager
    async def admin(self):
        self.admin_calls += 1
        yield self.conn

    @asynccontextmanager
    async def scoped(self, database: str, transactional: bool = True):
        self.scoped_databases.append(database)
        self.scoped_transactional.append(transactional)
        yield self.conn


class FakeInspector:
    """describe_table_on answers with a fixed structure."""

    def __init__(self, structure: Optional[TableStructure] = None):
        self.structure = structure or TableStructure()

    async def describe_table_on(self, conn, database: str, table: str) -> TableStructure:
        return self.structure


@pytest.fixture
def mysql_adapter() -> MySQLAdapter:
    return MySQLAdapter()


@pytest.fixture
def pg_adapter() -> PostgresAdapter:
    return PostgresAdapter()


@pytest.fixture
def fake_conn() -> FakeConn:
    return FakeConn()


@pytest.fixture
def make_conn():
    """Factory for a FakeConn failing on statements containing `fail_on`."""
    return FakeConn


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def make_inspector():
    return FakeInspector


@pytest.fixture(autouse=True)
def _no_ambient_config(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Keep a developer's own DATABASE_URL or config file out of unit tests."""
    for name in ("DATABASE_URL", "DB_CONSOLE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DB_CONSOLE_CONFIG", str(tmp_path / "missing.env"))


# ==================== Configuration Fixtures ====================


@pytest.fixture(scope="session")
def pg_database_url() -> Optional[str]:
    """PostgreSQL test server URL from environment"""
    return os.getenv("PG_TEST_DATABASE_URL")


@pytest.fixture(scope="session")
def mysql_database_url() -> Optional[str]:
    """MySQL test server URL from environment"""
    return os.getenv("MYSQL_TEST_DATABASE_URL")


@pytest.fixture
async def pg_config(pg_database_url: Optional[str]) -> ConnectionConfig:
    """PostgreSQL connection configuration"""
    if not pg_database_url:
        pytest.skip("PG_TEST_DATABASE_URL not set in environment")
    return ConnectionConfig.from_url(pg_database_url)


@pytest.fixture
async def mysql_config(mysql_database_url: Optional[str]) -> ConnectionConfig:
    """MySQL connection configuration"""
    if not mysql_database_url:
        pytest.skip("MYSQL_TEST_DATABASE_URL not set in environment")
    return ConnectionConfig.from_url(mysql_database_url)


@pytest.fixture(
    params=[
        pytest.param("mysql", marks=pytest.mark.mysql),
        pytest.param("postgresql", marks=pytest.mark.postgresql),
    ]
)
def live_config(request: pytest.FixtureRequest) -> ConnectionConfig:
    """Configuration for each dialect whose test server is configured"""
    env_name = {
        "mysql": "MYSQL_TEST_DATABASE_URL",
        "postgresql": "PG_TEST_DATABASE_URL",
    }[request.param]
    url = os.getenv(env_name)
    if not url:
        pytest.skip(f"{env_name} not set in environment")
    return ConnectionConfig.from_url(url)
