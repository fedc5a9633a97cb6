"""MySQL adapter: backtick quoting, USE-based session switching, non-transactional DDL."""

import logging
import re
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncConnection

from db_console.adapters.base import BaseAdapter, normalize_table_kind
from db_console.exceptions import IdentifierValidationError
from db_console.models.column import ColumnSpec, ColumnType, KeyRole
from db_console.models.profile import MYSQL_PROFILE, DialectProfile
from db_console.models.table import ColumnInfo, IndexColumnRow, TableInfo
from db_console.utils.serialization import format_bytes

logger = logging.getLogger(__name__)

# Portable type names spelled differently by MySQL
MYSQL_BASE_TYPES = {
    "TIMESTAMPTZ": "TIMESTAMP",
    "TIMETZ": "TIME",
    "BYTEA": "BLOB",
    "JSONB": "JSON",
}

_EXTRA_PATTERN = re.compile(r"^[A-Za-z0-9_ ()]*$")


class MySQLAdapter(BaseAdapter):
    """MySQL and MariaDB."""

    @property
    def profile(self) -> DialectProfile:
        return MYSQL_PROFILE

    def connect_args(self, connect_timeout: int) -> dict[str, Any]:
        return {"connect_timeout": connect_timeout}

    def render_literal(self, value: str) -> str:
        """MySQL treats backslash as an escape inside string literals."""
        escaped = value.replace("\\", "\\\\").replace("'", "''")
        return f"'{escaped}'"

    def render_type(self, column_type: ColumnType) -> str:
        if column_type.base == "UUID":
            return "CHAR(36)"
        return column_type.render(base=MYSQL_BASE_TYPES.get(column_type.base))

    def render_extra(self, spec: ColumnSpec) -> str:
        """
        Pass extra modifiers through after a character check.

        ``DEFAULT_GENERATED`` is catalog-only output and is dropped.

        Raises:
            IdentifierValidationError: If extra contains anything but words
            DialectUnsupportedOperation: For generated columns
        """
        words = [w for w in spec.extra.split() if w.upper() != "DEFAULT_GENERATED"]
        extra = " ".join(words)
        if not _EXTRA_PATTERN.match(extra):
            raise IdentifierValidationError(
                f"Invalid extra modifiers for column '{spec.name}': {spec.extra!r}",
                context={"kind": "extra", "column": spec.name},
            )
        if "GENERATED" in extra.upper():
            raise self._unsupported("Redefining a generated column", spec.name)
        return extra.upper()

    def render_create_database(self, name: str) -> str:
        return f"CREATE DATABASE IF NOT EXISTS {self.quote_identifier(name, 'database')}"

    def render_modify_column(
        self, table: str, spec: ColumnSpec, current: ColumnInfo
    ) -> list[str]:
        definition = self.render_column_definition(spec, inline_primary=False)
        return [
            f"ALTER TABLE {self.quote_identifier(table, 'table')} "
            f"MODIFY COLUMN {definition}"
        ]

    def render_rename_column(
        self, table: str, spec: ColumnSpec, current: ColumnInfo
    ) -> list[str]:
        """CHANGE COLUMN renames and redefines in one statement."""
        definition = self.render_column_definition(spec, inline_primary=False)
        return [
            f"ALTER TABLE {self.quote_identifier(table, 'table')} "
            f"CHANGE COLUMN {self.quote_identifier(spec.source_name, 'column')} "
            f"{definition}"
        ]

    def session_switch_statement(self, database: str) -> str:
        return f"USE {self.quote_identifier(database, 'database')}"

    async def fetch_databases(self, conn: AsyncConnection) -> list[str]:
        rows = await self._fetch_all(
            conn,
            """
            SELECT SCHEMA_NAME AS name
            FROM information_schema.SCHEMATA
            ORDER BY SCHEMA_NAME
            """,
        )
        return [row["name"] for row in rows]

    async def fetch_database_size(
        self, conn: AsyncConnection, database: str
    ) -> Optional[int]:
        rows = await self._fetch_all(
            conn,
            """
            SELECT SUM(DATA_LENGTH + INDEX_LENGTH) AS size_bytes
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :schema
            """,
            {"schema": database},
        )
        # An empty database has no TABLES rows and SUM() yields NULL
        if not rows or rows[0]["size_bytes"] is None:
            return 0
        return int(rows[0]["size_bytes"])

    async def fetch_tables(
        self, conn: AsyncConnection, database: str
    ) -> list[TableInfo]:
        rows = await self._fetch_all(
            conn,
            """
            SELECT
                TABLE_NAME AS name,
                TABLE_TYPE AS table_type,
                TABLE_ROWS AS row_estimate,
                DATA_LENGTH + INDEX_LENGTH AS size_bytes
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :schema
            ORDER BY TABLE_NAME
            """,
            {"schema": database},
        )

        tables = []
        for row in rows:
            size_bytes = int(row["size_bytes"]) if row["size_bytes"] is not None else None
            tables.append(
                TableInfo(
                    name=row["name"],
                    rows=int(row["row_estimate"] or 0),
                    size=format_bytes(size_bytes),
                    size_bytes=size_bytes,
                    type=normalize_table_kind(row["table_type"]),
                )
            )
        return tables

    async def fetch_columns(
        self, conn: AsyncConnection, database: str, table: str
    ) -> list[ColumnInfo]:
        rows = await self._fetch_all(
            conn,
            """
            SELECT
                COLUMN_NAME AS name,
                COLUMN_TYPE AS column_type,
                IS_NULLABLE AS is_nullable,
                COLUMN_KEY AS column_key,
                COLUMN_DEFAULT AS column_default,
                EXTRA AS extra
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = :schema AND TABLE_NAME = :table
            ORDER BY ORDINAL_POSITION
            """,
            {"schema": database, "table": table},
        )
        return [self._column_from_row(row) for row in rows]

    def _column_from_row(self, row: dict[str, Any]) -> ColumnInfo:
        raw_type = row["column_type"]
        try:
            rendered = self.render_type(ColumnType.parse(raw_type))
        except ValueError:
            # ENUM/SET value lists containing parentheses
            rendered = raw_type

        key = (row["column_key"] or "").upper()
        return ColumnInfo(
            name=row["name"],
            type=rendered,
            nullable=row["is_nullable"] == "YES",
            key=KeyRole(key) if key in KeyRole._value2member_map_ else KeyRole.NONE,
            default=row["column_default"],
            extra=row["extra"] or "",
        )

    async def fetch_index_rows(
        self, conn: AsyncConnection, database: str, table: str
    ) -> list[IndexColumnRow]:
        rows = await self._fetch_all(
            conn,
            """
            SELECT
                INDEX_NAME AS index_name,
                COLUMN_NAME AS column_name,
                SEQ_IN_INDEX AS position,
                INDEX_TYPE AS method,
                NON_UNIQUE AS non_unique
            FROM information_schema.STATISTICS
            WHERE TABLE_SCHEMA = :schema AND TABLE_NAME = :table
            ORDER BY INDEX_NAME, SEQ_IN_INDEX
            """,
            {"schema": database, "table": table},
        )
        return [
            IndexColumnRow(
                index_name=row["index_name"],
                # Functional index parts have no column
                column_name=row["column_name"] or "",
                position=int(row["position"]),
                method=row["method"],
                unique=not int(row["non_unique"]),
            )
            for row in rows
        ]

    async def render_drop_unique(
        self, conn: AsyncConnection, database: str, table: str, column: str
    ) -> list[str]:
        rows = await self._fetch_all(
            conn,
            """
            SELECT INDEX_NAME AS index_name
            FROM information_schema.STATISTICS
            WHERE TABLE_SCHEMA = :schema
              AND TABLE_NAME = :table
              AND NON_UNIQUE = 0
              AND INDEX_NAME <> 'PRIMARY'
            GROUP BY INDEX_NAME
            HAVING COUNT(*) = 1 AND MAX(COLUMN_NAME) = :column
            """,
            {"schema": database, "table": table, "column": column},
        )
        table_q = self.quote_identifier(table, "table")
        return [
            f"ALTER TABLE {table_q} DROP INDEX {self._quote_raw(row['index_name'])}"
            for row in rows
        ]
