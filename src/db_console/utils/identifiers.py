"""Identifier validation shared by every mutating entry point."""

import re
from typing import Iterable

from db_console.exceptions import IdentifierValidationError

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
MAX_IDENTIFIER_LENGTH = 64

RESERVED_DATABASE_NAMES = frozenset(
    {"mysql", "information_schema", "performance_schema", "sys", "test"}
)
RESERVED_TABLE_NAMES = frozenset(
    {"information_schema", "performance_schema", "mysql", "sys"}
)


def validate_identifier(name: object, kind: str = "identifier") -> str:
    """
    Check a database/table/column name before it is rendered into SQL.

    Args:
        name: Candidate name
        kind: What the name identifies, used in the error message

    Returns:
        The name, unchanged

    Raises:
        IdentifierValidationError: If the name is not a plain identifier
    """
    if not isinstance(name, str) or not name:
        raise IdentifierValidationError(
            f"{kind.capitalize()} name is required",
            context={"kind": kind},
        )

    if len(name) > MAX_IDENTIFIER_LENGTH or not IDENTIFIER_PATTERN.match(name):
        raise IdentifierValidationError(
            f"Invalid {kind} name '{name}'. Must start with a letter and contain "
            f"only letters, numbers, and underscores (max {MAX_IDENTIFIER_LENGTH} "
            "characters)",
            context={"kind": kind, "name": name},
        )

    return name


def validate_identifiers(**names: object) -> None:
    """Validate several names at once, keyed by kind."""
    for kind, name in names.items():
        validate_identifier(name, kind)


def ensure_not_reserved(name: str, reserved: Iterable[str], kind: str) -> str:
    """Reject names the console refuses to create or drop."""
    if name.lower() in set(reserved):
        raise IdentifierValidationError(
            f"{kind.capitalize()} name '{name}' is reserved",
            context={"kind": kind, "name": name},
        )
    return name
