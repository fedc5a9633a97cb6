"""PostgreSQL adapter: double-quote quoting, per-database connections, transactional DDL."""

import logging
import re
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncConnection

from db_console.adapters.base import BaseAdapter, normalize_table_kind
from db_console.models.column import ColumnSpec, ColumnType, KeyRole, TypeFamily
from db_console.models.profile import POSTGRES_PROFILE, DialectProfile
from db_console.models.table import ColumnInfo, IndexColumnRow, TableInfo
from db_console.utils.serialization import format_bytes

logger = logging.getLogger(__name__)

PUBLIC_SCHEMA = "public"

# MySQL-flavoured type names and their PostgreSQL spelling
POSTGRES_BASE_TYPES = {
    "INT": "INTEGER",
    "TINYINT": "SMALLINT",
    "MEDIUMINT": "INTEGER",
    "YEAR": "SMALLINT",
    "DOUBLE": "DOUBLE PRECISION",
    "DATETIME": "TIMESTAMP",
    "TINYTEXT": "TEXT",
    "MEDIUMTEXT": "TEXT",
    "LONGTEXT": "TEXT",
    "BLOB": "BYTEA",
    "TINYBLOB": "BYTEA",
    "MEDIUMBLOB": "BYTEA",
    "LONGBLOB": "BYTEA",
    "BINARY": "BYTEA",
    "VARBINARY": "BYTEA",
}

# Types PostgreSQL rejects with a parameter list, e.g. INTEGER(11)
_UNPARAMETERIZED_BASES = frozenset({"DOUBLE", "REAL", "BYTEA"})

_CAST_DEFAULT = re.compile(r"^'(?P<value>(?:[^']|'')*)'::[\w\s\".\[\]]+$")
_IDENTITY_CLAUSE = "GENERATED BY DEFAULT AS IDENTITY"


def _strip_default_cast(raw: Optional[str]) -> Optional[str]:
    """``'draft'::character varying`` -> ``draft``."""
    if raw is None:
        return None
    match = _CAST_DEFAULT.match(raw)
    if match:
        return match.group("value").replace("''", "'")
    return raw


class PostgresAdapter(BaseAdapter):
    """PostgreSQL; catalog reads are limited to the public schema."""

    @property
    def profile(self) -> DialectProfile:
        return POSTGRES_PROFILE

    def connect_args(self, connect_timeout: int) -> dict[str, Any]:
        # asyncpg names its connect timeout "timeout"
        return {"timeout": connect_timeout}

    def render_type(self, column_type: ColumnType) -> str:
        if column_type.base in ("ENUM", "SET"):
            raise self._unsupported(
                f"{column_type.base} column type", "create a named type instead"
            )

        base = POSTGRES_BASE_TYPES.get(column_type.base, column_type.base)
        if (
            column_type.family is TypeFamily.INTEGER
            or column_type.family is TypeFamily.BINARY
            or column_type.base in _UNPARAMETERIZED_BASES
        ):
            return base
        # UNSIGNED/ZEROFILL have no PostgreSQL equivalent
        return column_type.render(base=base, with_modifiers=False)

    def render_extra(self, spec: ColumnSpec) -> str:
        """
        Only auto-increment is expressible, as an identity column.

        Raises:
            DialectUnsupportedOperation: For any other extra modifier
        """
        if not spec.extra:
            return ""
        if spec.wants_auto_increment and spec.extra.lower() == "auto_increment":
            return _IDENTITY_CLAUSE
        raise self._unsupported("Column extra", repr(spec.extra))

    def render_create_database(self, name: str) -> str:
        # CREATE DATABASE has no IF NOT EXISTS form in PostgreSQL
        return f"CREATE DATABASE {self.quote_identifier(name, 'database')}"

    def _render_alter_type(self, table_q: str, column_q: str, spec: ColumnSpec) -> str:
        column_type = self.render_type(spec.column_type())
        return (
            f"ALTER TABLE {table_q} ALTER COLUMN {column_q} "
            f"TYPE {column_type} USING {column_q}::{column_type}"
        )

    def _render_alter_attributes(
        self, table_q: str, column_q: str, spec: ColumnSpec, current: ColumnInfo
    ) -> list[str]:
        """Nullability, default and identity, one statement each."""
        if spec.extra and not spec.wants_auto_increment:
            raise self._unsupported("Column extra", repr(spec.extra))

        alter = f"ALTER TABLE {table_q} ALTER COLUMN {column_q}"
        statements = [f"{alter} {'DROP' if spec.nullable else 'SET'} NOT NULL"]

        has_identity = "auto_increment" in current.extra.lower()
        if spec.wants_auto_increment:
            if not has_identity:
                statements.append(f"{alter} DROP DEFAULT")
                statements.append(f"{alter} ADD {_IDENTITY_CLAUSE}")
            return statements

        if has_identity:
            statements.append(f"{alter} DROP IDENTITY IF EXISTS")
        default = self.render_default(spec.default)
        if default is None:
            statements.append(f"{alter} DROP DEFAULT")
        else:
            statements.append(f"{alter} SET DEFAULT {default}")
        return statements

    def render_modify_column(
        self, table: str, spec: ColumnSpec, current: ColumnInfo
    ) -> list[str]:
        table_q = self.quote_identifier(table, "table")
        column_q = self.quote_identifier(spec.name, "column")
        return [
            self._render_alter_type(table_q, column_q, spec),
            *self._render_alter_attributes(table_q, column_q, spec, current),
        ]

    def render_rename_column(
        self, table: str, spec: ColumnSpec, current: ColumnInfo
    ) -> list[str]:
        """Type change on the old name, rename, then attributes on the new name."""
        table_q = self.quote_identifier(table, "table")
        old_q = self.quote_identifier(spec.source_name, "column")
        new_q = self.quote_identifier(spec.name, "column")
        return [
            self._render_alter_type(table_q, old_q, spec),
            f"ALTER TABLE {table_q} RENAME COLUMN {old_q} TO {new_q}",
            *self._render_alter_attributes(table_q, new_q, spec, current),
        ]

    def session_switch_statement(self, database: str) -> str:
        raise self._unsupported(
            "Switching databases within a session",
            "open a connection to the target database",
        )

    async def fetch_databases(self, conn: AsyncConnection) -> list[str]:
        rows = await self._fetch_all(
            conn,
            """
            SELECT datname AS name
            FROM pg_database
            WHERE NOT datistemplate AND datallowconn
            ORDER BY datname
            """,
        )
        return [row["name"] for row in rows]

    async def fetch_database_size(
        self, conn: AsyncConnection, database: str
    ) -> Optional[int]:
        rows = await self._fetch_all(
            conn,
            "SELECT pg_database_size(CAST(:name AS name)) AS size_bytes",
            {"name": database},
        )
        if not rows or rows[0]["size_bytes"] is None:
            return None
        return int(rows[0]["size_bytes"])

    async def fetch_database_created(
        self, conn: AsyncConnection, database: str
    ) -> Optional[str]:
        """
        Modification time of the database's PG_VERSION file.

        Needs superuser or pg_read_server_files; callers treat failure as unknown.
        """
        rows = await self._fetch_all(
            conn,
            """
            SELECT (pg_stat_file('base/' || oid || '/PG_VERSION')).modification AS created
            FROM pg_database
            WHERE datname = :name
            """,
            {"name": database},
        )
        if not rows or rows[0]["created"] is None:
            return None
        return rows[0]["created"].date().isoformat()

    async def fetch_tables(
        self, conn: AsyncConnection, database: str
    ) -> list[TableInfo]:
        rows = await self._fetch_all(
            conn,
            """
            SELECT
                t.table_name AS name,
                t.table_type AS table_type,
                COALESCE(s.n_live_tup, 0) AS row_estimate,
                pg_total_relation_size(
                    format('%I.%I', t.table_schema, t.table_name)::regclass
                ) AS size_bytes
            FROM information_schema.tables t
            LEFT JOIN pg_stat_user_tables s
                ON s.schemaname = t.table_schema AND s.relname = t.table_name
            WHERE t.table_schema = :schema
            ORDER BY t.table_name
            """,
            {"schema": PUBLIC_SCHEMA},
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
                column_name AS name,
                data_type,
                udt_name,
                character_maximum_length AS max_length,
                numeric_precision,
                numeric_scale,
                is_nullable,
                column_default,
                is_identity
            FROM information_schema.columns
            WHERE table_schema = :schema AND table_name = :table
            ORDER BY ordinal_position
            """,
            {"schema": PUBLIC_SCHEMA, "table": table},
        )
        keys = await self._fetch_key_roles(conn, table)
        return [self._column_from_row(row, keys.get(row["name"])) for row in rows]

    async def _fetch_key_roles(
        self, conn: AsyncConnection, table: str
    ) -> dict[str, KeyRole]:
        """
        Derive MySQL-style key codes from indexes and foreign keys.

        Precedence is PRI over UNI over MUL.
        """
        index_rows = await self._fetch_all(
            conn,
            """
            SELECT
                a.attname AS column_name,
                bool_or(i.indisprimary) AS is_primary,
                bool_or(i.indisunique AND NOT i.indisprimary AND i.indnatts = 1)
                    AS is_unique
            FROM pg_index i
            JOIN pg_attribute a
                ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
            WHERE i.indrelid = to_regclass(format('%I.%I', CAST(:schema AS text), CAST(:table AS text)))
            GROUP BY a.attname
            """,
            {"schema": PUBLIC_SCHEMA, "table": table},
        )
        foreign_rows = await self._fetch_all(
            conn,
            """
            SELECT kcu.column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                USING (constraint_schema, constraint_name)
            WHERE tc.constraint_type = 'FOREIGN KEY'
              AND tc.table_schema = :schema
              AND tc.table_name = :table
            """,
            {"schema": PUBLIC_SCHEMA, "table": table},
        )

        keys: dict[str, KeyRole] = {}
        for row in foreign_rows:
            keys[row["column_name"]] = KeyRole.FOREIGN
        for row in index_rows:
            name = row["column_name"]
            if row["is_primary"]:
                keys[name] = KeyRole.PRIMARY
            elif row["is_unique"]:
                keys[name] = KeyRole.UNIQUE
            else:
                keys.setdefault(name, KeyRole.FOREIGN)
        return keys

    def _describe_type(self, row: dict[str, Any]) -> str:
        data_type = row["data_type"]
        udt_name = row["udt_name"] or ""
        if data_type == "ARRAY":
            return f"{udt_name.lstrip('_').upper()}[]"
        if data_type == "USER-DEFINED":
            return udt_name
        try:
            column_type = ColumnType.from_catalog(
                data_type,
                max_length=row["max_length"],
                precision=row["numeric_precision"],
                scale=row["numeric_scale"],
            )
            return self.render_type(column_type)
        except ValueError:
            return data_type.upper()

    def _column_from_row(
        self, row: dict[str, Any], key: Optional[KeyRole]
    ) -> ColumnInfo:
        default = row["column_default"]
        extra = ""
        if row["is_identity"] == "YES" or (
            default is not None and default.startswith("nextval(")
        ):
            extra = "auto_increment"
            default = None

        return ColumnInfo(
            name=row["name"],
            type=self._describe_type(row),
            nullable=row["is_nullable"] == "YES",
            key=key or KeyRole.NONE,
            default=_strip_default_cast(default),
            extra=extra,
        )

    async def fetch_index_rows(
        self, conn: AsyncConnection, database: str, table: str
    ) -> list[IndexColumnRow]:
        rows = await self._fetch_all(
            conn,
            """
            SELECT
                ic.relname AS index_name,
                a.attname AS column_name,
                k.ord AS position,
                am.amname AS method,
                i.indisunique AS is_unique
            FROM pg_index i
            JOIN pg_class ic ON ic.oid = i.indexrelid
            JOIN pg_am am ON am.oid = ic.relam
            CROSS JOIN LATERAL unnest(i.indkey::int2[]) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = k.attnum
            WHERE i.indrelid = to_regclass(format('%I.%I', CAST(:schema AS text), CAST(:table AS text)))
            ORDER BY ic.relname, k.ord
            """,
            {"schema": PUBLIC_SCHEMA, "table": table},
        )
        return [
            IndexColumnRow(
                index_name=row["index_name"],
                column_name=row["column_name"],
                position=int(row["position"]),
                method=(row["method"] or "").upper() or None,
                unique=bool(row["is_unique"]),
            )
            for row in rows
        ]

    async def render_drop_unique(
        self, conn: AsyncConnection, database: str, table: str, column: str
    ) -> list[str]:
        """
        A UNIQUE constraint is dropped as a constraint; a bare unique index
        (CREATE UNIQUE INDEX) is dropped as an index.
        """
        rows = await self._fetch_all(
            conn,
            """
            SELECT con.conname AS name, 'constraint' AS kind
            FROM pg_constraint con
            JOIN pg_attribute a
                ON a.attrelid = con.conrelid AND a.attnum = con.conkey[1]
            WHERE con.conrelid = to_regclass(format('%I.%I', CAST(:schema AS text), CAST(:table AS text)))
              AND con.contype = 'u'
              AND array_length(con.conkey, 1) = 1
              AND a.attname = :column
            UNION ALL
            SELECT ic.relname AS name, 'index' AS kind
            FROM pg_index i
            JOIN pg_class ic ON ic.oid = i.indexrelid
            JOIN pg_attribute a
                ON a.attrelid = i.indrelid AND a.attnum = i.indkey[0]
            WHERE i.indrelid = to_regclass(format('%I.%I', CAST(:schema AS text), CAST(:table AS text)))
              AND i.indisunique
              AND NOT i.indisprimary
              AND i.indnatts = 1
              AND a.attname = :column
              AND NOT EXISTS (
                  SELECT 1 FROM pg_constraint c WHERE c.conindid = i.indexrelid
              )
            """,
            {"schema": PUBLIC_SCHEMA, "table": table, "column": column},
        )

        table_q = self.quote_identifier(table, "table")
        statements = []
        for row in rows:
            name_q = self._quote_raw(row["name"])
            if row["kind"] == "constraint":
                statements.append(f"ALTER TABLE {table_q} DROP CONSTRAINT {name_q}")
            else:
                statements.append(
                    f"DROP INDEX {self._quote_raw(PUBLIC_SCHEMA)}.{name_q}"
                )
        return statements
