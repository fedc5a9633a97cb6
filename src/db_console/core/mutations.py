"""DDL mutation engine: databases, tables and columns."""

import asyncio
import logging
import weakref
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

from db_console.core.connection import DatabaseConnection, execute_raw
from db_console.core.inspector import MetadataInspector
from db_console.exceptions import (
    BackendExecutionError,
    IdentifierValidationError,
    PartialMutationFailure,
)
from db_console.models.column import ColumnSpec, FieldDefinition, KeyRole
from db_console.models.table import ColumnInfo
from db_console.templates import get_template
from db_console.utils import (
    RESERVED_DATABASE_NAMES,
    RESERVED_TABLE_NAMES,
    ensure_not_reserved,
    validate_identifiers,
)

if TYPE_CHECKING:
    from db_console.adapters.base import BaseAdapter

logger = logging.getLogger(__name__)


class SchemaMutator:
    """
    Renders and executes schema changes.

    Each logical mutation runs on one connection inside one transaction.
    Where the dialect has transactional DDL a failure rolls the whole
    sequence back. Otherwise every statement commits as it runs, and a
    failure after the first statement raises PartialMutationFailure with the
    statements that already took effect. Nothing is compensated or retried.
    """

    def __init__(
        self,
        connection: DatabaseConnection,
        adapter: "BaseAdapter",
        inspector: MetadataInspector,
    ):
        self.connection = connection
        self.adapter = adapter
        self.inspector = inspector
        self._table_locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    def _lock_for(self, database: str, table: str) -> asyncio.Lock:
        """
        Per-table lock serializing column mutations inside this process.

        The entry lives only while some caller holds or waits on the lock.
        """
        key = (database, table)
        lock = self._table_locks.get(key)
        if lock is None:
            lock = self._table_locks[key] = asyncio.Lock()
        return lock

    async def _execute(
        self,
        conn: AsyncConnection,
        statements: list[str],
        context: dict[str, Any],
        applied: Optional[list[str]] = None,
    ) -> list[str]:
        """
        Run statements in order, appending each to ``applied`` once it succeeds.

        Raises:
            PartialMutationFailure: Non-transactional dialect, earlier
                statements already applied
            BackendExecutionError: Any other statement failure
        """
        applied = [] if applied is None else applied
        for statement in statements:
            logger.debug(f"[{context.get('operation')}] {statement}")
            try:
                await execute_raw(conn, statement)
            except DBAPIError as e:
                raise self._failure(e, statement, applied, context) from e
            applied.append(statement)
        return applied

    def _failure(
        self,
        error: DBAPIError,
        statement: str,
        applied: list[str],
        context: dict[str, Any],
    ) -> BackendExecutionError:
        message, code = BackendExecutionError.describe_driver_error(error)
        context = {**context, "statement": statement}

        if applied and not self.adapter.profile.transactional_ddl:
            logger.warning(
                f"{context.get('operation')} failed after {len(applied)} applied "
                f"statement(s); schema may be partially modified"
            )
            return PartialMutationFailure(
                f"{message} (earlier statements were already applied)",
                applied_statements=applied,
                failed_statement=statement,
                backend_code=code,
                context=context,
                cause=error,
            )
        return BackendExecutionError(
            message, backend_code=code, context=context, cause=error
        )

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def create_database(self, name: str) -> list[str]:
        validate_identifiers(database=name)
        ensure_not_reserved(name, RESERVED_DATABASE_NAMES, "database")
        statement = self.adapter.render_create_database(name)
        context = {"operation": "create_database", "database": name}

        async with self.connection.admin() as conn:
            applied = await self._execute(conn, [statement], context)
        logger.info(f"Created database '{name}'")
        return applied

    async def delete_database(self, name: str) -> list[str]:
        validate_identifiers(database=name)
        ensure_not_reserved(name, RESERVED_DATABASE_NAMES, "database")
        statement = self.adapter.render_drop_database(name)
        context = {"operation": "delete_database", "database": name}

        async with self.connection.admin() as conn:
            applied = await self._execute(conn, [statement], context)
        logger.info(f"Dropped database '{name}'")
        return applied

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def create_table(
        self, database: str, table: str, definition: str
    ) -> list[str]:
        """
        Wrap a column-definition fragment in CREATE TABLE and run it.

        The fragment is caller-authored SQL (field builder, template or free
        text) and is passed through as is.
        """
        validate_identifiers(database=database, table=table)
        ensure_not_reserved(table, RESERVED_TABLE_NAMES, "table")
        if not definition or not definition.strip():
            raise IdentifierValidationError(
                "Table schema is required",
                context={"database": database, "table": table},
            )

        statement = self.adapter.render_create_table(table, definition.strip())
        context = {"operation": "create_table", "database": database, "table": table}
        async with self.connection.scoped(database) as conn:
            applied = await self._execute(conn, [statement], context)
        logger.info(f"Created table '{database}.{table}'")
        return applied

    async def create_table_from_template(
        self, database: str, table: str, template_key: str
    ) -> list[str]:
        template = get_template(template_key, self.adapter.name)
        return await self.create_table(database, table, template.schema_)

    async def create_table_from_fields(
        self, database: str, table: str, fields: list[FieldDefinition]
    ) -> list[str]:
        if not fields:
            raise IdentifierValidationError(
                "At least one field is required",
                context={"database": database, "table": table},
            )
        definition = self.adapter.render_field_definitions(fields)
        return await self.create_table(database, table, definition)

    async def delete_table(self, database: str, table: str) -> list[str]:
        validate_identifiers(database=database, table=table)
        ensure_not_reserved(table, RESERVED_TABLE_NAMES, "table")
        statement = self.adapter.render_drop_table(table)
        context = {"operation": "delete_table", "database": database, "table": table}

        async with self.connection.scoped(database) as conn:
            applied = await self._execute(conn, [statement], context)
        logger.info(f"Dropped table '{database}.{table}'")
        return applied

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    async def add_column(
        self, database: str, table: str, spec: ColumnSpec
    ) -> list[str]:
        """
        ADD COLUMN, then ADD UNIQUE as a second statement when requested.

        On a non-transactional dialect the column stays if the unique step
        fails (PartialMutationFailure).
        """
        validate_identifiers(database=database, table=table, column=spec.name)
        statements = self.adapter.render_add_column(table, spec)
        context = {
            "operation": "add_column",
            "database": database,
            "table": table,
            "column": spec.name,
        }

        async with self._lock_for(database, table):
            async with self.connection.scoped(database) as conn:
                applied = await self._execute(conn, statements, context)
        logger.info(f"Added column '{spec.name}' to '{database}.{table}'")
        return applied

    async def update_column(
        self, database: str, table: str, spec: ColumnSpec
    ) -> list[str]:
        """
        Redefine (and optionally rename) a column, then reconcile uniqueness.

        The prior key role is read on the mutation's own connection while the
        table lock is held, so the lookup and the index change cannot
        interleave with another update in this process.

        Raises:
            IdentifierValidationError: Unknown source column, or the rename
                target already exists
        """
        validate_identifiers(database=database, table=table, column=spec.name)
        if spec.original_name:
            validate_identifiers(column=spec.original_name)
        context = {
            "operation": "update_column",
            "database": database,
            "table": table,
            "column": spec.source_name,
        }

        async with self._lock_for(database, table):
            async with self.connection.scoped(database) as conn:
                structure = await self.inspector.describe_table_on(
                    conn, database, table
                )
                current = structure.get_column(spec.source_name)
                if current is None:
                    raise IdentifierValidationError(
                        f"Column '{spec.source_name}' does not exist in table "
                        f"'{table}'",
                        context=context,
                    )
                if spec.is_rename and structure.get_column(spec.name) is not None:
                    raise IdentifierValidationError(
                        f"Column '{spec.name}' already exists in table '{table}'",
                        context=context,
                    )

                if spec.is_rename:
                    statements = self.adapter.render_rename_column(table, spec, current)
                else:
                    statements = self.adapter.render_modify_column(table, spec, current)
                applied = await self._execute(conn, statements, context)
                await self._reconcile_uniqueness(
                    conn, database, table, spec, current, applied, context
                )

        logger.info(
            f"Updated column '{spec.source_name}' in '{database}.{table}'"
            + (f" (renamed to '{spec.name}')" if spec.is_rename else "")
        )
        return applied

    async def _reconcile_uniqueness(
        self,
        conn: AsyncConnection,
        database: str,
        table: str,
        spec: ColumnSpec,
        current: ColumnInfo,
        applied: list[str],
        context: dict[str, Any],
    ) -> None:
        if (current.key == KeyRole.PRIMARY) != (spec.key == KeyRole.PRIMARY):
            logger.warning(
                f"Primary key change requested for '{table}.{spec.name}' "
                f"({current.key.value or 'none'} -> {spec.key.value or 'none'}); "
                "primary keys are not altered by column updates"
            )
            return

        was_unique = current.key == KeyRole.UNIQUE
        wants_unique = spec.key == KeyRole.UNIQUE
        if wants_unique and not was_unique:
            statements = [self.adapter.render_add_unique(table, spec.name)]
        elif was_unique and not wants_unique:
            try:
                statements = await self.adapter.render_drop_unique(
                    conn, database, table, spec.name
                )
            except DBAPIError as e:
                raise self._failure(e, "<unique index lookup>", applied, context) from e
            if not statements:
                logger.warning(
                    f"No single-column unique index found on '{table}.{spec.name}'"
                )
        else:
            return

        await self._execute(conn, statements, context, applied)

    async def delete_column(self, database: str, table: str, column: str) -> list[str]:
        validate_identifiers(database=database, table=table, column=column)
        statement = self.adapter.render_drop_column(table, column)
        context = {
            "operation": "delete_column",
            "database": database,
            "table": table,
            "column": column,
        }

        async with self._lock_for(database, table):
            async with self.connection.scoped(database) as conn:
                applied = await self._execute(conn, [statement], context)
        logger.info(f"Dropped column '{column}' from '{database}.{table}'")
        return applied
