"""Core database operations layer."""

from .connection import DatabaseConnection
from .executor import QueryExecutor
from .inspector import MetadataInspector
from .mutations import SchemaMutator
from .search import CatalogSearchSource, ContentSearch, SearchSource

__all__ = [
    "DatabaseConnection",
    "MetadataInspector",
    "QueryExecutor",
    "SchemaMutator",
    "ContentSearch",
    "CatalogSearchSource",
    "SearchSource",
]
