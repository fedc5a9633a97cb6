"""
db_console - Multi-dialect database administration core

Connection management, introspection, DDL mutation, raw query execution,
table templates and content search for MySQL and PostgreSQL, with a fixture
mode when no backend is configured.
"""

__version__ = "1.0.0"

from .exceptions import (
    BackendExecutionError,
    ConfigurationMissing,
    ConnectionFailure,
    DatabaseConsoleError,
    DialectUnsupportedOperation,
    IdentifierValidationError,
    PartialMutationFailure,
    TemplateNotFound,
)
from .models.column import ColumnSpec, ColumnType, KeyRole
from .models.config import ConnectionConfig
from .models.database import DatabaseInfo
from .models.query import QueryResult
from .models.table import ColumnInfo, IndexInfo, TableInfo, TableStructure
from .server import DatabaseService

__all__ = [
    "DatabaseService",
    "ConnectionConfig",
    "ColumnSpec",
    "ColumnType",
    "KeyRole",
    "DatabaseInfo",
    "TableInfo",
    "ColumnInfo",
    "IndexInfo",
    "TableStructure",
    "QueryResult",
    "DatabaseConsoleError",
    "ConfigurationMissing",
    "ConnectionFailure",
    "IdentifierValidationError",
    "DialectUnsupportedOperation",
    "BackendExecutionError",
    "PartialMutationFailure",
    "TemplateNotFound",
]
