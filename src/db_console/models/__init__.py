"""Pydantic models for descriptors, requests and configuration."""

from .column import ColumnSpec, ColumnType, FieldDefinition, KeyRole, TypeFamily
from .config import ConnectionConfig, load_config
from .database import DatabaseInfo
from .profile import MYSQL_PROFILE, POSTGRES_PROFILE, DialectProfile
from .query import QueryResult
from .search import SearchFilters, SearchHit, SearchRequest, SearchResult
from .table import ColumnInfo, IndexColumnRow, IndexInfo, TableInfo, TableStructure
from .template import TableCreateRequest, TableTemplate

__all__ = [
    "ColumnSpec",
    "ColumnType",
    "FieldDefinition",
    "KeyRole",
    "TypeFamily",
    "ConnectionConfig",
    "load_config",
    "DatabaseInfo",
    "DialectProfile",
    "MYSQL_PROFILE",
    "POSTGRES_PROFILE",
    "QueryResult",
    "SearchFilters",
    "SearchHit",
    "SearchRequest",
    "SearchResult",
    "ColumnInfo",
    "IndexColumnRow",
    "IndexInfo",
    "TableInfo",
    "TableStructure",
    "TableCreateRequest",
    "TableTemplate",
]
