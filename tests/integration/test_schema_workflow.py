"""Integration tests: full schema workflow against a live server

Runs once per dialect whose test server URL is set
(MYSQL_TEST_DATABASE_URL / PG_TEST_DATABASE_URL); skipped otherwise.
"""

import uuid
from typing import AsyncGenerator

import pytest

from db_console.core.connection import DatabaseConnection
from db_console.models.config import ConnectionConfig
from db_console.server import DatabaseService

pytestmark = [pytest.mark.integration]


@pytest.fixture
async def live_service(
    live_config: ConnectionConfig,
) -> AsyncGenerator[DatabaseService, None]:
    service = DatabaseService(connection=DatabaseConnection(live_config))
    if not await service.initialize():
        await service.cleanup()
        pytest.skip(f"{live_config.dialect} test server unreachable")
    try:
        yield service
    finally:
        await service.cleanup()


@pytest.fixture
async def scratch_database(live_service: DatabaseService) -> AsyncGenerator[str, None]:
    name = f"shop_test_{uuid.uuid4().hex[:8]}"
    payload = await live_service.handle_create_database({"name": name})
    assert payload["success"], payload
    try:
        yield name
    finally:
        await live_service.handle_delete_database({"name": name})


def column_named(structure: dict, name: str) -> dict:
    return next(c for c in structure["columns"] if c["name"] == name)


async def test_status(live_service: DatabaseService):
    payload = await live_service.handle_status()
    assert payload["connected"] is True
    assert payload["mock"] is False
    assert payload["type"] in ("mysql", "postgresql")


async def test_database_listing(live_service: DatabaseService, scratch_database: str):
    payload = await live_service.handle_list_databases()
    names = [db["name"] for db in payload["databases"]]
    assert scratch_database in names
    assert "information_schema" not in names
    assert "template0" not in names


async def test_schema_workflow(live_service: DatabaseService, scratch_database: str):
    db = scratch_database

    payload = await live_service.handle_create_table(
        {"database": db, "name": "products", "template": "products"}
    )
    assert payload["success"], payload

    tables = await live_service.handle_list_tables({"database": db})
    assert [t["name"] for t in tables["tables"]] == ["products"]

    structure = await live_service.handle_table_structure(
        {"database": db, "table": "products"}
    )
    assert structure["columns"][0]["name"] == "id"
    assert structure["columns"][0]["key"] == "PRI"
    assert column_named(structure, "sku")["key"] == "UNI"
    assert column_named(structure, "price")["type"] == "DECIMAL(10,2)"
    assert any(index["unique"] and index["columns"] == ["sku"]
               for index in structure["indexes"])

    # Add a unique column, then rename it and drop the uniqueness
    payload = await live_service.handle_add_column(
        {
            "database": db,
            "table": "products",
            "column": {"name": "barcode", "type": "VARCHAR", "typeParams": "64",
                       "key": "UNI"},
        }
    )
    assert payload["success"], payload
    structure = await live_service.handle_table_structure(
        {"database": db, "table": "products"}
    )
    assert column_named(structure, "barcode")["key"] == "UNI"

    payload = await live_service.handle_update_column(
        {
            "database": db,
            "table": "products",
            "column": {"originalName": "barcode", "name": "ean", "type": "VARCHAR",
                       "typeParams": "32", "nullable": True, "key": ""},
        }
    )
    assert payload["success"], payload
    structure = await live_service.handle_table_structure(
        {"database": db, "table": "products"}
    )
    ean = column_named(structure, "ean")
    assert ean["type"] == "VARCHAR(32)"
    assert ean["key"] == ""
    assert all(c["name"] != "barcode" for c in structure["columns"])

    # Raw SQL, including a literal percent sign
    payload = await live_service.handle_execute_query(
        {
            "database": db,
            "query": "INSERT INTO products (name, price, sku) "
            "VALUES ('Widget 100% cotton', 9.99, 'W-1')",
        }
    )
    assert payload["success"], payload
    assert payload["affectedRows"] == 1

    payload = await live_service.handle_execute_query(
        {"database": db, "query": "SELECT name, price FROM products WHERE name LIKE '%cotton%'"}
    )
    assert payload["rows"] == [{"name": "Widget 100% cotton", "price": "9.99"}]

    payload = await live_service.handle_search(
        {"database": db, "query": "cotton", "filters": {"searchIn": "data"}}
    )
    assert payload["totalHits"] == 1
    assert payload["hits"][0]["column"] == "name"
    assert payload["hits"][0]["type"] == "text"

    payload = await live_service.handle_delete_column(
        {"database": db, "table": "products", "column": "ean"}
    )
    assert payload["success"], payload

    payload = await live_service.handle_delete_table({"database": db, "name": "products"})
    assert payload["success"], payload
    tables = await live_service.handle_list_tables({"database": db})
    assert tables["tables"] == []


async def test_failed_unique_is_reported(
    live_service: DatabaseService, scratch_database: str
):
    db = scratch_database
    await live_service.handle_create_table(
        {"database": db, "name": "tags", "schema": "id INT PRIMARY KEY, label VARCHAR(20)"}
    )
    await live_service.handle_execute_query(
        {"database": db, "query": "INSERT INTO tags (id, label) VALUES (1, 'a'), (2, 'a')"}
    )

    payload = await live_service.handle_update_column(
        {
            "database": db,
            "table": "tags",
            "column": {"name": "label", "type": "VARCHAR(40)", "key": "UNI"},
        }
    )

    assert payload["status"] == 500
    structure = await live_service.handle_table_structure({"database": db, "table": "tags"})
    label = column_named(structure, "label")
    if live_service.adapter.profile.transactional_ddl:
        assert payload["partial"] is False
        assert label["type"] == "VARCHAR(20)"
    else:
        assert payload["partial"] is True
        assert payload["appliedStatements"]
        assert label["type"] == "VARCHAR(40)"
    assert label["key"] == ""


async def test_session_database_is_restored(
    live_service: DatabaseService, scratch_database: str
):
    await live_service.handle_create_table(
        {"database": scratch_database, "name": "t", "schema": "id INT"}
    )
    await live_service.handle_execute_query(
        {"database": scratch_database, "query": "SELECT 1"}
    )
    payload = await live_service.handle_list_databases()
    assert scratch_database in [db["name"] for db in payload["databases"]]


async def test_column_round_trip(live_service: DatabaseService, scratch_database: str):
    db = scratch_database
    await live_service.handle_create_table(
        {"database": db, "name": "products", "template": "products"}
    )
    before = await live_service.handle_table_structure(
        {"database": db, "table": "products"}
    )

    await live_service.handle_add_column(
        {
            "database": db,
            "table": "products",
            "column": {"name": "sku2", "type": "VARCHAR", "typeParams": "64",
                       "nullable": True},
        }
    )
    added = await live_service.handle_table_structure(
        {"database": db, "table": "products"}
    )
    assert len(added["columns"]) == len(before["columns"]) + 1
    sku2 = column_named(added, "sku2")
    assert sku2["type"] == "VARCHAR(64)"
    assert sku2["nullable"] is True

    await live_service.handle_execute_query(
        {"database": db, "query": "INSERT INTO products (name, price, sku2) "
                                  "VALUES ('Lamp', 20, 'L-64')"}
    )
    payload = await live_service.handle_update_column(
        {
            "database": db,
            "table": "products",
            "column": {"originalName": "sku2", "name": "sku_code", "type": "VARCHAR",
                       "typeParams": "64", "nullable": True},
        }
    )
    assert payload["success"], payload
    renamed = await live_service.handle_table_structure(
        {"database": db, "table": "products"}
    )
    names = [c["name"] for c in renamed["columns"]]
    assert "sku_code" in names
    assert "sku2" not in names
    rows = await live_service.handle_execute_query(
        {"database": db, "query": "SELECT sku_code FROM products"}
    )
    assert rows["rows"] == [{"sku_code": "L-64"}]

    # UNI -> '' -> UNI ends unique again
    for key in ("UNI", "", "UNI"):
        payload = await live_service.handle_update_column(
            {
                "database": db,
                "table": "products",
                "column": {"name": "sku_code", "type": "VARCHAR(64)", "key": key},
            }
        )
        assert payload["success"], payload
        structure = await live_service.handle_table_structure(
            {"database": db, "table": "products"}
        )
        assert column_named(structure, "sku_code")["key"] == key

    await live_service.handle_delete_column(
        {"database": db, "table": "products", "column": "sku_code"}
    )
    after = await live_service.handle_table_structure(
        {"database": db, "table": "products"}
    )
    assert len(after["columns"]) == len(before["columns"])
