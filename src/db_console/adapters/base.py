"""Base adapter abstract class for dialect-specific SQL rendering and catalogs."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from db_console.exceptions import DialectUnsupportedOperation
from db_console.models.column import ColumnSpec, ColumnType, FieldDefinition, KeyRole
from db_console.models.profile import DialectProfile
from db_console.models.table import ColumnInfo, IndexColumnRow, TableInfo
from db_console.utils.identifiers import validate_identifier

logger = logging.getLogger(__name__)

# Default expressions rendered without quotes
DEFAULT_KEYWORDS = frozenset(
    {
        "CURRENT_TIMESTAMP",
        "CURRENT_TIMESTAMP()",
        "CURRENT_DATE",
        "CURRENT_TIME",
        "LOCALTIMESTAMP",
        "NOW()",
        "TRUE",
        "FALSE",
    }
)
NUMERIC_LITERAL = re.compile(r"^-?\d+(\.\d+)?$")

TABLE_KINDS = {
    "BASE TABLE": "table",
    "VIEW": "view",
    "SYSTEM VIEW": "view",
    "FOREIGN": "foreign table",
    "LOCAL TEMPORARY": "temporary table",
}


def normalize_table_kind(raw: Optional[str]) -> str:
    """Map an information_schema table_type to a logical kind."""
    if not raw:
        return "table"
    return TABLE_KINDS.get(raw.upper(), raw.lower())


class BaseAdapter(ABC):
    """Dialect driver: renders DDL and reads the catalog for one backend family."""

    @property
    @abstractmethod
    def profile(self) -> DialectProfile:
        """Fixed facts about this dialect."""
        ...

    @property
    def name(self) -> str:
        return self.profile.name

    @abstractmethod
    def connect_args(self, connect_timeout: int) -> dict[str, Any]:
        """Driver keyword arguments for ``create_async_engine``."""
        ...

    # ------------------------------------------------------------------
    # Identifiers and literals
    # ------------------------------------------------------------------

    def quote_identifier(self, name: str, kind: str = "identifier") -> str:
        """Validate then quote a caller-supplied identifier."""
        validate_identifier(name, kind)
        return self._quote_raw(name)

    def _quote_raw(self, name: str) -> str:
        """Quote a catalog-sourced name (index/constraint), escaping the quote."""
        q = self.profile.quote_char
        return f"{q}{name.replace(q, q + q)}{q}"

    def render_literal(self, value: str) -> str:
        """Render a string literal."""
        return "'" + value.replace("'", "''") + "'"

    def render_default(self, value: Optional[str]) -> Optional[str]:
        """
        Render a DEFAULT expression.

        Returns:
            SQL text, or None when no default should be emitted
        """
        if value is None:
            return None
        stripped = value.strip()
        if not stripped or stripped.upper() == "NULL":
            return None
        if stripped.upper() in DEFAULT_KEYWORDS:
            return stripped.upper()
        if NUMERIC_LITERAL.match(stripped):
            return stripped
        return self.render_literal(stripped)

    @abstractmethod
    def render_type(self, column_type: ColumnType) -> str:
        """Render a structured type in this dialect's spelling."""
        ...

    @abstractmethod
    def render_extra(self, spec: ColumnSpec) -> str:
        """Render the extra modifiers of a column definition."""
        ...

    def render_column_definition(
        self,
        spec: ColumnSpec,
        inline_unique: bool = False,
        inline_primary: bool = True,
    ) -> str:
        """
        Render ``name TYPE [NOT NULL] [DEFAULT x] [extra] [PRIMARY KEY|UNIQUE]``.

        Args:
            spec: Column definition
            inline_unique: Put UNIQUE in the definition instead of a separate
                statement (CREATE TABLE field builder)
            inline_primary: Emit PRIMARY KEY for PRI columns; off when
                redefining an existing column
        """
        parts = [
            self.quote_identifier(spec.name, "column"),
            self.render_type(spec.column_type()),
        ]
        if not spec.nullable:
            parts.append("NOT NULL")

        # Backends reject a default on auto-increment/identity columns
        if not spec.wants_auto_increment:
            default = self.render_default(spec.default)
            if default is not None:
                parts.append(f"DEFAULT {default}")

        extra = self.render_extra(spec)
        if extra:
            parts.append(extra)

        if spec.key == KeyRole.PRIMARY and inline_primary:
            parts.append("PRIMARY KEY")
        elif spec.key == KeyRole.UNIQUE and inline_unique:
            parts.append("UNIQUE")

        return " ".join(parts)

    # ------------------------------------------------------------------
    # DDL rendering
    # ------------------------------------------------------------------

    @abstractmethod
    def render_create_database(self, name: str) -> str:
        ...

    def render_drop_database(self, name: str) -> str:
        return f"DROP DATABASE IF EXISTS {self.quote_identifier(name, 'database')}"

    def render_create_table(self, table: str, definition: str) -> str:
        """Wrap a column-definition fragment in CREATE TABLE."""
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quote_identifier(table, 'table')} "
            f"({definition})"
        )

    def render_drop_table(self, table: str) -> str:
        return f"DROP TABLE IF EXISTS {self.quote_identifier(table, 'table')}"

    def render_add_column(self, table: str, spec: ColumnSpec) -> list[str]:
        """
        Render ADD COLUMN, followed by ADD UNIQUE when uniqueness is requested.

        The second statement is separate so that it can fail on its own, for
        example when existing rows already hold duplicate values.
        """
        statements = [
            f"ALTER TABLE {self.quote_identifier(table, 'table')} "
            f"ADD COLUMN {self.render_column_definition(spec)}"
        ]
        if spec.key == KeyRole.UNIQUE:
            statements.append(self.render_add_unique(table, spec.name))
        return statements

    def render_add_unique(self, table: str, column: str) -> str:
        return (
            f"ALTER TABLE {self.quote_identifier(table, 'table')} "
            f"ADD UNIQUE ({self.quote_identifier(column, 'column')})"
        )

    def render_drop_column(self, table: str, column: str) -> str:
        return (
            f"ALTER TABLE {self.quote_identifier(table, 'table')} "
            f"DROP COLUMN {self.quote_identifier(column, 'column')}"
        )

    @abstractmethod
    def render_modify_column(
        self, table: str, spec: ColumnSpec, current: ColumnInfo
    ) -> list[str]:
        """Redefine a column in place."""
        ...

    @abstractmethod
    def render_rename_column(
        self, table: str, spec: ColumnSpec, current: ColumnInfo
    ) -> list[str]:
        """Rename ``spec.original_name`` to ``spec.name`` and redefine it."""
        ...

    def render_sample_query(self, table: str, limit: int) -> str:
        """Bounded sample of a table's rows."""
        return f"SELECT * FROM {self.quote_identifier(table, 'table')} LIMIT {int(limit)}"

    def render_field_definitions(self, fields: list[FieldDefinition]) -> str:
        """Render field builder rows into a CREATE TABLE column fragment."""
        return ", ".join(
            self.render_column_definition(field.to_spec(), inline_unique=True)
            for field in fields
        )

    @abstractmethod
    def session_switch_statement(self, database: str) -> str:
        """
        Statement switching a session's current database.

        Raises:
            DialectUnsupportedOperation: If the dialect has no such statement
        """
        ...

    # ------------------------------------------------------------------
    # Catalog access
    # ------------------------------------------------------------------

    async def _fetch_all(
        self,
        conn: AsyncConnection,
        sql: str,
        params: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """Run a catalog query and return rows as plain dicts."""
        logger.debug(f"[{self.name}] catalog query: {' '.join(sql.split())[:200]}")
        result = await conn.execute(text(sql), params or {})
        return [dict(row) for row in result.mappings().all()]

    @abstractmethod
    async def fetch_databases(self, conn: AsyncConnection) -> list[str]:
        """All database names known to the server (system ones included)."""
        ...

    @abstractmethod
    async def fetch_database_size(
        self, conn: AsyncConnection, database: str
    ) -> Optional[int]:
        ...

    async def fetch_database_created(
        self, conn: AsyncConnection, database: str
    ) -> Optional[str]:
        """Creation date, None where the backend does not record one."""
        return None

    @abstractmethod
    async def fetch_tables(
        self, conn: AsyncConnection, database: str
    ) -> list[TableInfo]:
        ...

    @abstractmethod
    async def fetch_columns(
        self, conn: AsyncConnection, database: str, table: str
    ) -> list[ColumnInfo]:
        """Columns in ordinal order."""
        ...

    @abstractmethod
    async def fetch_index_rows(
        self, conn: AsyncConnection, database: str, table: str
    ) -> list[IndexColumnRow]:
        """One row per (index, member column)."""
        ...

    @abstractmethod
    async def render_drop_unique(
        self, conn: AsyncConnection, database: str, table: str, column: str
    ) -> list[str]:
        """
        Look up the single-column unique index on ``column`` and render its removal.

        Returns:
            Statements to run (empty when no such index exists)
        """
        ...

    def _unsupported(self, operation: str, detail: str = "") -> DialectUnsupportedOperation:
        message = f"{operation} is not supported for {self.name}"
        if detail:
            message += f": {detail}"
        return DialectUnsupportedOperation(
            message, context={"dialect": self.name, "operation": operation}
        )
