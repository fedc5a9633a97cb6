"""Deterministic fixture data served when no backend is configured or reachable."""

import time
from typing import Any

from db_console.models.column import KeyRole
from db_console.models.database import DatabaseInfo
from db_console.models.query import QueryResult
from db_console.models.table import ColumnInfo, IndexInfo, TableInfo, TableStructure

MOCK_SUFFIX = "(mock)"

MOCK_DATABASES = [
    DatabaseInfo(name="supreme_dev", size="2.5 MB", created="2024-01-15"),
    DatabaseInfo(name="test_db", size="1.2 MB", created="2024-01-20"),
    DatabaseInfo(name="project_alpha", size="5.8 MB", created="2024-02-01"),
]

MOCK_TABLES = [
    TableInfo(name="users", rows=150, type="table"),
    TableInfo(name="projects", rows=25, type="table"),
    TableInfo(name="logs", rows=1200, type="table"),
    TableInfo(name="settings", rows=5, type="table"),
]

MOCK_STRUCTURE = TableStructure(
    columns=[
        ColumnInfo(name="id", type="INT", nullable=False, key=KeyRole.PRIMARY),
        ColumnInfo(name="name", type="VARCHAR(255)", nullable=False),
        ColumnInfo(
            name="email", type="VARCHAR(255)", nullable=False, key=KeyRole.UNIQUE
        ),
        ColumnInfo(
            name="created_at",
            type="TIMESTAMP",
            nullable=False,
            default="CURRENT_TIMESTAMP",
        ),
    ],
    indexes=[
        IndexInfo(name="PRIMARY", columns=["id"], type="BTREE", unique=True),
        IndexInfo(name="email_unique", columns=["email"], type="BTREE", unique=True),
    ],
)

MOCK_QUERY_ROWS: list[dict[str, Any]] = [
    {"id": 1, "name": "John Doe", "email": "john@example.com", "created_at": "2024-01-15"},
    {"id": 2, "name": "Jane Smith", "email": "jane@example.com", "created_at": "2024-01-16"},
    {"id": 3, "name": "Bob Johnson", "email": "bob@example.com", "created_at": "2024-01-17"},
]


def mock_message(message: str) -> str:
    return f"{message} {MOCK_SUFFIX}"


def mock_query_result(sql: str) -> QueryResult:
    """Three sample rows for anything that looks like a SELECT, else nothing."""
    start_time = time.time()
    rows = [dict(row) for row in MOCK_QUERY_ROWS] if "select" in sql.lower() else []
    return QueryResult(
        success=True,
        rows=rows,
        columns=list(rows[0]) if rows else [],
        execution_time=round((time.time() - start_time) * 1000, 2),
        affected_rows=len(rows),
    )


class FixtureSearchSource:
    """Search source answering from the fixture tables and rows."""

    async def list_tables(self, database: str) -> list[TableInfo]:
        return [table.model_copy() for table in MOCK_TABLES]

    async def describe_table(self, database: str, table: str) -> TableStructure:
        return MOCK_STRUCTURE.model_copy(deep=True)

    async def sample_rows(
        self, database: str, table: str, limit: int
    ) -> list[dict[str, Any]]:
        return [dict(row) for row in MOCK_QUERY_ROWS[:limit]]
