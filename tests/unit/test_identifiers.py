"""Unit tests for identifier validation"""

import pytest

from db_console.exceptions import IdentifierValidationError
from db_console.utils import (
    RESERVED_DATABASE_NAMES,
    RESERVED_TABLE_NAMES,
    ensure_not_reserved,
    validate_identifier,
    validate_identifiers,
)


@pytest.mark.parametrize("name", ["users", "Shop_2024", "a", "x" * 64])
def test_valid_identifiers(name):
    assert validate_identifier(name, "table") == name


@pytest.mark.parametrize(
    "name",
    [
        "",
        None,
        "1users",
        "_users",
        "user-table",
        "user table",
        "users`; DROP DATABASE shop; --",
        'users"',
        "x" * 65,
        "tëst",
    ],
)
def test_invalid_identifiers(name):
    with pytest.raises(IdentifierValidationError) as exc_info:
        validate_identifier(name, "table")
    assert exc_info.value.status == 400
    assert exc_info.value.context["kind"] == "table"


def test_validate_identifiers_reports_kind():
    with pytest.raises(IdentifierValidationError) as exc_info:
        validate_identifiers(database="shop", column="bad name")
    assert "column" in exc_info.value.message


@pytest.mark.parametrize("name", ["mysql", "MySQL", "information_schema", "sys"])
def test_reserved_database_names(name):
    with pytest.raises(IdentifierValidationError):
        ensure_not_reserved(name, RESERVED_DATABASE_NAMES, "database")


def test_reserved_table_names():
    with pytest.raises(IdentifierValidationError):
        ensure_not_reserved("performance_schema", RESERVED_TABLE_NAMES, "table")
    assert ensure_not_reserved("orders", RESERVED_TABLE_NAMES, "table") == "orders"
