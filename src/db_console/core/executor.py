"""Raw query execution against one database."""

import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncGenerator

from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

from db_console.core.connection import DatabaseConnection, execute_raw
from db_console.exceptions import BackendExecutionError, IdentifierValidationError
from db_console.models.query import QueryResult
from db_console.utils import convert_rows_to_json_safe, validate_identifiers

if TYPE_CHECKING:
    from db_console.adapters.base import BaseAdapter

logger = logging.getLogger(__name__)


class QueryExecutor:
    """
    Runs caller-supplied SQL verbatim.

    The statement is not parsed or restricted; callers are expected to gate
    access to this operation.
    """

    def __init__(self, connection: DatabaseConnection, adapter: "BaseAdapter"):
        """
        Initialize query executor.

        Args:
            connection: Database connection manager
            adapter: Dialect driver
        """
        self.connection = connection
        self.adapter = adapter

    @asynccontextmanager
    async def _bound(self, database: str) -> AsyncGenerator[AsyncConnection, None]:
        """
        Connection whose current database is ``database``.

        Dialects with a session switch reuse the administrative pool and
        restore the administrative database afterwards; the others open a
        scoped autocommit connection. Either way the statement is not wrapped
        in a transaction.
        """
        profile = self.adapter.profile
        if not profile.supports_session_switch:
            async with self.connection.scoped(database, transactional=False) as conn:
                yield conn
            return

        async with self.connection.admin() as conn:
            await execute_raw(conn, self.adapter.session_switch_statement(database))
            try:
                yield conn
            finally:
                if profile.admin_database:
                    await execute_raw(
                        conn,
                        self.adapter.session_switch_statement(profile.admin_database),
                    )

    async def execute(self, database: str, sql: str) -> QueryResult:
        """
        Execute a statement and time it.

        Args:
            database: Database the statement runs in
            sql: Statement text, passed to the driver unchanged

        Returns:
            Rows (JSON-safe), columns, wall-clock milliseconds and affected rows

        Raises:
            BackendExecutionError: If the backend rejects the statement
        """
        validate_identifiers(database=database)
        if not sql or not sql.strip():
            raise IdentifierValidationError(
                "Query is required",
                context={"operation": "execute", "database": database},
            )

        start_time = time.time()
        logger.debug(f"[{database}] {sql}")
        try:
            async with self._bound(database) as conn:
                result = await execute_raw(conn, sql)
                rows, columns = self._collect(result)
                if result.returns_rows:
                    affected = len(rows)
                else:
                    affected = max(result.rowcount, 0)
        except DBAPIError as e:
            raise BackendExecutionError.from_driver_error(
                e,
                context={
                    "operation": "execute",
                    "database": database,
                    "statement": sql,
                },
            ) from e

        execution_time = (time.time() - start_time) * 1000  # Convert to ms

        return QueryResult(
            success=True,
            rows=rows,
            columns=columns,
            execution_time=round(execution_time, 2),
            affected_rows=affected,
        )

    @staticmethod
    def _collect(result: CursorResult) -> tuple[list[dict[str, Any]], list[str]]:
        if not result.returns_rows:
            return [], []
        columns = list(result.keys())
        rows = [dict(zip(columns, row)) for row in result.fetchall()]
        return convert_rows_to_json_safe(rows), columns

    async def sample_rows(
        self, database: str, table: str, limit: int = 100
    ) -> list[dict[str, Any]]:
        """
        Bounded sample of a table's rows.

        Args:
            database: Database name
            table: Table name
            limit: Maximum number of rows
        """
        query = self.adapter.render_sample_query(table, limit)
        result = await self.execute(database, query)
        return result.rows
