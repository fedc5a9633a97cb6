"""Unit tests for metadata introspection"""

from contextlib import asynccontextmanager
from typing import Optional

import pytest
from sqlalchemy.exc import DBAPIError

from db_console.core.inspector import MetadataInspector, group_index_rows
from db_console.exceptions import BackendExecutionError, IdentifierValidationError
from db_console.models.profile import MYSQL_PROFILE, POSTGRES_PROFILE
from db_console.models.table import ColumnInfo, IndexColumnRow, TableInfo


def test_group_index_rows():
    rows = [
        IndexColumnRow(index_name="PRIMARY", column_name="id", position=1,
                       method="BTREE", unique=True),
        IndexColumnRow(index_name="idx_name", column_name="last", position=2),
        IndexColumnRow(index_name="idx_name", column_name="first", position=1),
        IndexColumnRow(index_name="email_key", column_name="email", position=1,
                       method="hash", unique=True),
    ]

    indexes = group_index_rows(rows)

    assert [i.name for i in indexes] == ["PRIMARY", "idx_name", "email_key"]
    assert indexes[1].columns == ["first", "last"]
    assert indexes[1].type == "BTREE"
    assert indexes[1].unique is False
    assert indexes[2].type == "HASH"
    assert indexes[2].unique is True


def test_group_index_rows_empty():
    assert group_index_rows([]) == []


def driver_error(message: str) -> DBAPIError:
    return DBAPIError("SELECT", None, Exception(message))


class StubAdapter:
    """Catalog answers without a server."""

    def __init__(self, profile, names, sizes, created=None):
        self.profile = profile
        self.names = names
        self.sizes = sizes
        self.created = created or {}

    async def fetch_databases(self, conn) -> list[str]:
        if isinstance(self.names, Exception):
            raise self.names
        return self.names

    async def fetch_database_size(self, conn, database: str) -> Optional[int]:
        size = self.sizes.get(database)
        if isinstance(size, Exception):
            raise size
        return size

    async def fetch_database_created(self, conn, database: str) -> Optional[str]:
        created = self.created.get(database)
        if isinstance(created, Exception):
            raise created
        return created

    async def fetch_tables(self, conn, database: str) -> list[TableInfo]:
        return [TableInfo(name="users", rows=3)]

    async def fetch_columns(self, conn, database: str, table: str) -> list[ColumnInfo]:
        if table == "broken":
            raise driver_error("permission denied for table broken")
        return [ColumnInfo(name="id", type="INT", nullable=False)]

    async def fetch_index_rows(self, conn, database: str, table: str):
        return [IndexColumnRow(index_name="PRIMARY", column_name="id", position=1,
                               unique=True)]


class StubConnection:
    def __init__(self):
        self.admin_calls = 0
        self.scoped_databases: list[str] = []

    @asynccontextmanager
    async def admin(self):
        self.admin_calls += 1
        yield object()

    @asynccontextmanager
    async def scoped(self, database: str, transactional: bool = True):
        self.scoped_databases.append(database)
        yield object()


class TestListDatabases:
    async def test_system_databases_excluded(self):
        adapter = StubAdapter(
            MYSQL_PROFILE,
            ["information_schema", "mysql", "performance_schema", "shop", "sys"],
            {"shop": 2621440},
        )
        inspector = MetadataInspector(StubConnection(), adapter)

        databases = await inspector.list_databases()

        assert [db.name for db in databases] == ["shop"]
        assert databases[0].size == "2.50 MB"
        assert databases[0].size_bytes == 2621440
        assert databases[0].created == "Unknown"

    async def test_size_failure_is_unknown(self):
        adapter = StubAdapter(
            POSTGRES_PROFILE,
            ["postgres", "shop", "analytics"],
            {"shop": driver_error("permission denied"), "analytics": 0},
            created={"analytics": "2024-02-01", "shop": driver_error("denied")},
        )
        inspector = MetadataInspector(StubConnection(), adapter)

        databases = {db.name: db for db in await inspector.list_databases()}

        assert set(databases) == {"shop", "analytics"}
        assert databases["shop"].size == "Unknown"
        assert databases["shop"].size_bytes is None
        assert databases["shop"].created == "Unknown"
        assert databases["analytics"].size == "0.00 B"
        assert databases["analytics"].created == "2024-02-01"

    async def test_listing_failure_raises(self):
        adapter = StubAdapter(MYSQL_PROFILE, driver_error("access denied"), {})
        inspector = MetadataInspector(StubConnection(), adapter)
        with pytest.raises(BackendExecutionError, match="access denied"):
            await inspector.list_databases()


class TestCatalogConnection:
    async def test_mysql_reads_over_admin_pool(self):
        connection = StubConnection()
        inspector = MetadataInspector(connection, StubAdapter(MYSQL_PROFILE, [], {}))
        tables = await inspector.list_tables("shop")
        assert [t.name for t in tables] == ["users"]
        assert connection.admin_calls == 1
        assert connection.scoped_databases == []

    async def test_postgres_opens_scoped_connection(self):
        connection = StubConnection()
        inspector = MetadataInspector(connection, StubAdapter(POSTGRES_PROFILE, [], {}))
        structure = await inspector.describe_table("shop", "users")
        assert connection.scoped_databases == ["shop"]
        assert structure.column_count == 1
        assert structure.indexes[0].columns == ["id"]

    async def test_describe_failure(self):
        inspector = MetadataInspector(StubConnection(), StubAdapter(MYSQL_PROFILE, [], {}))
        with pytest.raises(BackendExecutionError) as exc_info:
            await inspector.describe_table("shop", "broken")
        assert exc_info.value.context["table"] == "broken"

    async def test_get_column(self):
        inspector = MetadataInspector(StubConnection(), StubAdapter(MYSQL_PROFILE, [], {}))
        assert (await inspector.get_column("shop", "users", "id")).type == "INT"
        assert await inspector.get_column("shop", "users", "nope") is None

    async def test_invalid_names(self):
        inspector = MetadataInspector(StubConnection(), StubAdapter(MYSQL_PROFILE, [], {}))
        with pytest.raises(IdentifierValidationError):
            await inspector.list_tables("shop`")
