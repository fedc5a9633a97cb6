"""JSON serialization utilities using orjson.

orjson handles most driver types natively:
- datetime, date, time -> ISO format
- UUID -> string
- dataclasses, pydantic models -> dict

The handler below covers what the MySQL and PostgreSQL drivers hand back on
top of that (Decimal, bytes, timedelta, network and range types).
"""

import base64
import datetime
import decimal
import ipaddress
from typing import Any, Optional

import orjson


def _default_handler(obj: Any) -> Any:
    """
    Custom default handler for types orjson doesn't handle natively.

    Raises:
        TypeError: If object cannot be serialized
    """
    # DECIMAL/NUMERIC columns; keep precision
    if isinstance(obj, decimal.Decimal):
        return str(obj)

    # TIME columns come back from aiomysql as timedelta
    if isinstance(obj, datetime.timedelta):
        return obj.total_seconds()

    if isinstance(obj, (bytes, bytearray, memoryview)):
        data = bytes(obj)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(data).decode("ascii")

    if isinstance(obj, (set, frozenset)):
        return list(obj)

    if isinstance(
        obj,
        (
            ipaddress.IPv4Address,
            ipaddress.IPv6Address,
            ipaddress.IPv4Network,
            ipaddress.IPv6Network,
        ),
    ):
        return str(obj)

    # asyncpg Range
    if (
        hasattr(obj, "lower")
        and hasattr(obj, "upper")
        and not isinstance(obj, str)
        and not callable(obj.lower)
    ):
        return {"lower": obj.lower, "upper": obj.upper}

    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def convert_value_to_json_safe(value: Any) -> Any:
    """
    Convert a value to JSON-serializable format.

    Round-trips through orjson so the result matches what will actually be
    sent to the caller.
    """
    try:
        json_bytes = orjson.dumps(value, default=_default_handler)
        return orjson.loads(json_bytes)
    except TypeError:
        return str(value)


def convert_row_to_json_safe(row: dict[str, Any]) -> dict[str, Any]:
    """Convert all values in a row dict to JSON-serializable formats."""
    return {key: convert_value_to_json_safe(value) for key, value in row.items()}


def convert_rows_to_json_safe(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert all rows to JSON-serializable format."""
    return [convert_row_to_json_safe(row) for row in rows]


def stringify_value(value: Any) -> Optional[str]:
    """String form of a cell value as shown in the console, None for NULL."""
    if value is None:
        return None
    safe = convert_value_to_json_safe(value)
    if isinstance(safe, str):
        return safe
    if isinstance(safe, bool):
        return "true" if safe else "false"
    if isinstance(safe, (dict, list)):
        return orjson.dumps(safe).decode("utf-8")
    return str(safe)


def format_bytes(size_bytes: Optional[int]) -> str:
    """Human-readable size, "Unknown" when the size could not be computed."""
    if size_bytes is None:
        return "Unknown"

    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"


def dumps(obj: Any) -> str:
    """Serialize object to an indented JSON string using orjson."""
    return orjson.dumps(
        obj, default=_default_handler, option=orjson.OPT_INDENT_2
    ).decode("utf-8")
