"""Catalog introspection producing dialect-neutral descriptors."""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncGenerator, Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

from db_console.core.connection import DatabaseConnection
from db_console.exceptions import BackendExecutionError
from db_console.models.database import UNKNOWN, DatabaseInfo
from db_console.models.table import (
    ColumnInfo,
    IndexColumnRow,
    IndexInfo,
    TableInfo,
    TableStructure,
)
from db_console.utils import format_bytes, validate_identifiers

if TYPE_CHECKING:
    from db_console.adapters.base import BaseAdapter

logger = logging.getLogger(__name__)


def group_index_rows(rows: list[IndexColumnRow]) -> list[IndexInfo]:
    """
    Group (index, column) rows into indexes.

    Indexes keep first-seen order; member columns are sorted by their
    position within the index.
    """
    grouped: dict[str, list[IndexColumnRow]] = {}
    for row in rows:
        grouped.setdefault(row.index_name, []).append(row)

    indexes = []
    for name, members in grouped.items():
        members.sort(key=lambda r: r.position)
        indexes.append(
            IndexInfo(
                name=name,
                columns=[m.column_name for m in members],
                type=(members[0].method or "BTREE").upper(),
                unique=members[0].unique,
            )
        )
    return indexes


class MetadataInspector:
    """Reads databases, tables, columns and indexes from the backend catalog.

    Nothing is cached: every call re-queries the catalog.
    """

    def __init__(self, connection: DatabaseConnection, adapter: "BaseAdapter"):
        """
        Initialize metadata inspector.

        Args:
            connection: Database connection manager
            adapter: Dialect driver
        """
        self.connection = connection
        self.adapter = adapter

    @asynccontextmanager
    async def catalog(self, database: str) -> AsyncGenerator[AsyncConnection, None]:
        """
        Connection that can read ``database``'s catalog.

        A server-wide catalog (MySQL information_schema) is read over the
        administrative pool; otherwise a scoped connection is opened.
        """
        if self.adapter.profile.supports_session_switch:
            async with self.connection.admin() as conn:
                yield conn
        else:
            async with self.connection.scoped(database) as conn:
                yield conn

    async def list_databases(self) -> list[DatabaseInfo]:
        """
        List user databases with best-effort size and creation date.

        Returns:
            Databases, system databases excluded
        """
        system = self.adapter.profile.system_databases
        async with self.connection.admin() as conn:
            try:
                names = await self.adapter.fetch_databases(conn)
            except DBAPIError as e:
                raise BackendExecutionError.from_driver_error(
                    e, context={"operation": "list_databases"}
                ) from e

            databases = []
            for name in names:
                if name.lower() in system:
                    continue
                databases.append(await self._describe_database(conn, name))
        return databases

    async def _describe_database(
        self, conn: AsyncConnection, name: str
    ) -> DatabaseInfo:
        size_bytes: Optional[int] = None
        try:
            size_bytes = await self.adapter.fetch_database_size(conn, name)
        except DBAPIError as e:
            logger.warning(f"Size of database '{name}' unavailable: {e.orig}")

        created = None
        try:
            created = await self.adapter.fetch_database_created(conn, name)
        except DBAPIError as e:
            logger.debug(f"Creation date of database '{name}' unavailable: {e.orig}")

        return DatabaseInfo(
            name=name,
            size=format_bytes(size_bytes),
            size_bytes=size_bytes,
            created=created or UNKNOWN,
        )

    async def list_tables(self, database: str) -> list[TableInfo]:
        """Tables and views of one database."""
        validate_identifiers(database=database)
        async with self.catalog(database) as conn:
            try:
                return await self.adapter.fetch_tables(conn, database)
            except DBAPIError as e:
                raise BackendExecutionError.from_driver_error(
                    e, context={"operation": "list_tables", "database": database}
                ) from e

    async def describe_table(self, database: str, table: str) -> TableStructure:
        """Columns in ordinal order plus grouped indexes."""
        validate_identifiers(database=database, table=table)
        async with self.catalog(database) as conn:
            return await self.describe_table_on(conn, database, table)

    async def describe_table_on(
        self, conn: AsyncConnection, database: str, table: str
    ) -> TableStructure:
        """describe_table over a connection the caller already holds."""
        try:
            columns = await self.adapter.fetch_columns(conn, database, table)
            index_rows = await self.adapter.fetch_index_rows(conn, database, table)
        except DBAPIError as e:
            raise BackendExecutionError.from_driver_error(
                e,
                context={
                    "operation": "describe_table",
                    "database": database,
                    "table": table,
                },
            ) from e
        return TableStructure(columns=columns, indexes=group_index_rows(index_rows))

    async def get_column(
        self, database: str, table: str, column: str
    ) -> Optional[ColumnInfo]:
        """Describe one column, None if it does not exist."""
        structure = await self.describe_table(database, table)
        return structure.get_column(column)
