"""Unit tests for PostgreSQL DDL rendering"""

import pytest

from db_console.adapters import PostgresAdapter, create_adapter
from db_console.adapters.postgresql import _strip_default_cast
from db_console.exceptions import DialectUnsupportedOperation
from db_console.models.column import ColumnSpec, FieldDefinition
from db_console.models.table import ColumnInfo


def test_create_adapter_aliases():
    assert isinstance(create_adapter("postgres"), PostgresAdapter)
    assert isinstance(create_adapter("postgresql+asyncpg"), PostgresAdapter)


class TestBasics:
    def test_quote_identifier(self, pg_adapter: PostgresAdapter):
        assert pg_adapter.quote_identifier("users") == '"users"'

    def test_create_database_has_no_if_not_exists(self, pg_adapter: PostgresAdapter):
        assert pg_adapter.render_create_database("shop") == 'CREATE DATABASE "shop"'

    def test_session_switch_unsupported(self, pg_adapter: PostgresAdapter):
        with pytest.raises(DialectUnsupportedOperation) as exc_info:
            pg_adapter.session_switch_statement("shop")
        assert exc_info.value.status == 501

    def test_connect_args(self, pg_adapter: PostgresAdapter):
        assert pg_adapter.connect_args(5) == {"timeout": 5}

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("'draft'::character varying", "draft"),
            ("'it''s'::text", "it's"),
            ("0", "0"),
            ("CURRENT_TIMESTAMP", "CURRENT_TIMESTAMP"),
            (None, None),
        ],
    )
    def test_strip_default_cast(self, raw, expected):
        assert _strip_default_cast(raw) == expected


class TestTypes:
    @pytest.mark.parametrize(
        "type_text,expected",
        [
            ("INT", "INTEGER"),
            ("INT(11)", "INTEGER"),
            ("TINYINT(1)", "SMALLINT"),
            ("DOUBLE", "DOUBLE PRECISION"),
            ("DATETIME", "TIMESTAMP"),
            ("LONGTEXT", "TEXT"),
            ("BLOB", "BYTEA"),
            ("DECIMAL(10,2) UNSIGNED", "DECIMAL(10,2)"),
            ("VARCHAR(255)", "VARCHAR(255)"),
            ("UUID", "UUID"),
        ],
    )
    def test_render_type(self, pg_adapter: PostgresAdapter, type_text, expected):
        spec = ColumnSpec(name="a", type=type_text)
        assert pg_adapter.render_type(spec.column_type()) == expected

    def test_enum_unsupported(self, pg_adapter: PostgresAdapter):
        spec = ColumnSpec(name="a", type="ENUM('a','b')")
        with pytest.raises(DialectUnsupportedOperation):
            pg_adapter.render_type(spec.column_type())


class TestColumnDDL:
    def test_field_definitions_use_identity(self, pg_adapter: PostgresAdapter):
        fields = [
            FieldDefinition(name="id", type="INT", primaryKey=True, autoIncrement=True),
            FieldDefinition(name="sku", type="VARCHAR", typeParams="100", unique=True),
        ]
        assert pg_adapter.render_field_definitions(fields) == (
            '"id" INTEGER NOT NULL GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY, '
            '"sku" VARCHAR(100) UNIQUE'
        )

    def test_add_column_with_unique(self, pg_adapter: PostgresAdapter):
        spec = ColumnSpec(name="sku", type="VARCHAR(100)", key="UNI")
        assert pg_adapter.render_add_column("products", spec) == [
            'ALTER TABLE "products" ADD COLUMN "sku" VARCHAR(100)',
            'ALTER TABLE "products" ADD UNIQUE ("sku")',
        ]

    def test_modify_column(self, pg_adapter: PostgresAdapter):
        spec = ColumnSpec(
            name="price", type="DECIMAL", typeParams="12,2", nullable=False, default="0"
        )
        current = ColumnInfo(name="price", type="DECIMAL(10,2)", nullable=True)
        assert pg_adapter.render_modify_column("products", spec, current) == [
            'ALTER TABLE "products" ALTER COLUMN "price" TYPE DECIMAL(12,2) '
            'USING "price"::DECIMAL(12,2)',
            'ALTER TABLE "products" ALTER COLUMN "price" SET NOT NULL',
            'ALTER TABLE "products" ALTER COLUMN "price" SET DEFAULT 0',
        ]

    def test_rename_column(self, pg_adapter: PostgresAdapter):
        spec = ColumnSpec(name="headline", originalName="title", type="VARCHAR(255)")
        current = ColumnInfo(name="title", type="VARCHAR(255)", nullable=False)
        assert pg_adapter.render_rename_column("posts", spec, current) == [
            'ALTER TABLE "posts" ALTER COLUMN "title" TYPE VARCHAR(255) '
            'USING "title"::VARCHAR(255)',
            'ALTER TABLE "posts" RENAME COLUMN "title" TO "headline"',
            'ALTER TABLE "posts" ALTER COLUMN "headline" DROP NOT NULL',
            'ALTER TABLE "posts" ALTER COLUMN "headline" DROP DEFAULT',
        ]

    def test_add_identity(self, pg_adapter: PostgresAdapter):
        spec = ColumnSpec(name="id", type="INT", nullable=False, extra="auto_increment")
        current = ColumnInfo(name="id", type="INTEGER", nullable=False)
        statements = pg_adapter.render_modify_column("t", spec, current)
        assert statements[-2:] == [
            'ALTER TABLE "t" ALTER COLUMN "id" DROP DEFAULT',
            'ALTER TABLE "t" ALTER COLUMN "id" ADD GENERATED BY DEFAULT AS IDENTITY',
        ]

    def test_existing_identity_left_alone(self, pg_adapter: PostgresAdapter):
        spec = ColumnSpec(name="id", type="INT", nullable=False, extra="auto_increment")
        current = ColumnInfo(
            name="id", type="INTEGER", nullable=False, extra="auto_increment"
        )
        statements = pg_adapter.render_modify_column("t", spec, current)
        assert not any("IDENTITY" in s for s in statements)

    def test_drop_identity(self, pg_adapter: PostgresAdapter):
        spec = ColumnSpec(name="id", type="INT", nullable=False)
        current = ColumnInfo(
            name="id", type="INTEGER", nullable=False, extra="auto_increment"
        )
        statements = pg_adapter.render_modify_column("t", spec, current)
        assert 'ALTER TABLE "t" ALTER COLUMN "id" DROP IDENTITY IF EXISTS' in statements

    def test_other_extra_unsupported(self, pg_adapter: PostgresAdapter):
        spec = ColumnSpec(
            name="updated_at", type="TIMESTAMP", extra="on update CURRENT_TIMESTAMP"
        )
        current = ColumnInfo(name="updated_at", type="TIMESTAMP", nullable=True)
        with pytest.raises(DialectUnsupportedOperation):
            pg_adapter.render_modify_column("t", spec, current)
