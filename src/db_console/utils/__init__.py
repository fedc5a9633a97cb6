"""Utility modules for db-console."""

from db_console.utils.identifiers import (
    RESERVED_DATABASE_NAMES,
    RESERVED_TABLE_NAMES,
    ensure_not_reserved,
    validate_identifier,
    validate_identifiers,
)
from db_console.utils.serialization import (
    convert_row_to_json_safe,
    convert_rows_to_json_safe,
    convert_value_to_json_safe,
    dumps,
    format_bytes,
    stringify_value,
)

__all__ = [
    "RESERVED_DATABASE_NAMES",
    "RESERVED_TABLE_NAMES",
    "ensure_not_reserved",
    "validate_identifier",
    "validate_identifiers",
    "convert_value_to_json_safe",
    "convert_row_to_json_safe",
    "convert_rows_to_json_safe",
    "dumps",
    "format_bytes",
    "stringify_value",
]
