"""Bounded heuristic content search over table names and sampled rows.

This is a diagnostic tool, not an index: the cost is tables x sampled rows x
columns, with the row sample capped at SAMPLE_SIZE per table.
"""

import logging
import time
from typing import Any, Protocol

from db_console.core.executor import QueryExecutor
from db_console.core.inspector import MetadataInspector
from db_console.exceptions import DatabaseConsoleError
from db_console.models.search import SearchHit, SearchRequest, SearchResult
from db_console.models.table import TableInfo, TableStructure
from db_console.utils import stringify_value

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 100
MAX_HITS = 100

# Substrings of the declared column type, checked in this order
TYPE_BUCKETS: list[tuple[str, tuple[str, ...]]] = [
    ("text", ("char", "text")),
    ("number", ("int", "decimal", "numeric", "float", "double", "real", "serial")),
    ("date", ("date", "time")),
]


def classify_type(column_type: str) -> str:
    """Coarse bucket of a declared type: text, number, date or other."""
    lowered = column_type.lower()
    for bucket, needles in TYPE_BUCKETS:
        if any(needle in lowered for needle in needles):
            return bucket
    return "other"


class SearchSource(Protocol):
    """What the search engine reads from."""

    async def list_tables(self, database: str) -> list[TableInfo]: ...

    async def describe_table(self, database: str, table: str) -> TableStructure: ...

    async def sample_rows(
        self, database: str, table: str, limit: int
    ) -> list[dict[str, Any]]: ...


class CatalogSearchSource:
    """Live source: the inspector for structure, the executor for samples."""

    def __init__(self, inspector: MetadataInspector, executor: QueryExecutor):
        self.inspector = inspector
        self.executor = executor

    async def list_tables(self, database: str) -> list[TableInfo]:
        return await self.inspector.list_tables(database)

    async def describe_table(self, database: str, table: str) -> TableStructure:
        return await self.inspector.describe_table(database, table)

    async def sample_rows(
        self, database: str, table: str, limit: int
    ) -> list[dict[str, Any]]:
        return await self.executor.sample_rows(database, table, limit)


class ContentSearch:
    """Substring search over table names and a bounded sample of each table."""

    def __init__(
        self,
        source: SearchSource,
        sample_size: int = SAMPLE_SIZE,
        max_hits: int = MAX_HITS,
    ):
        self.source = source
        self.sample_size = sample_size
        self.max_hits = max_hits

    async def search(self, request: SearchRequest) -> SearchResult:
        """
        Run the search.

        Table listing failures propagate; a failure on one table is logged
        and that table is skipped.
        """
        start_time = time.time()
        filters = request.filters
        term = request.query if filters.case_sensitive else request.query.lower()

        tables = await self.source.list_tables(request.database)
        hits: list[SearchHit] = []

        for table in tables:
            if filters.include_tables:
                name = table.name if filters.case_sensitive else table.name.lower()
                if term in name:
                    hits.append(
                        SearchHit(
                            table=table.name,
                            column="table_name",
                            row=0,
                            value=table.name,
                            type="table",
                            context="Table name match",
                        )
                    )

            if filters.include_data:
                try:
                    hits.extend(await self._search_rows(request, table.name, term))
                except DatabaseConsoleError as e:
                    logger.warning(
                        f"Skipping table '{request.database}.{table.name}' "
                        f"in search: {e.message}"
                    )

        execution_time = round((time.time() - start_time) * 1000, 2)
        return SearchResult(
            success=True,
            hits=hits[: self.max_hits],
            total_hits=len(hits),
            execution_time=execution_time,
            message=f"Found {len(hits)} results in {execution_time}ms",
        )

    async def _search_rows(
        self, request: SearchRequest, table: str, term: str
    ) -> list[SearchHit]:
        filters = request.filters
        structure = await self.source.describe_table(request.database, table)
        rows = await self.source.sample_rows(request.database, table, self.sample_size)

        hits = []
        for ordinal, row in enumerate(rows, start=1):
            for column_name, value in row.items():
                text_value = stringify_value(value)
                if text_value is None:
                    continue
                candidate = text_value if filters.case_sensitive else text_value.lower()
                if term not in candidate:
                    continue

                column = structure.get_column(column_name)
                column_type = column.type if column else "unknown"
                bucket = classify_type(column_type)
                if filters.data_type != "all" and filters.data_type != bucket:
                    continue

                hits.append(
                    SearchHit(
                        table=table,
                        column=column_name,
                        row=ordinal,
                        value=text_value,
                        type=bucket,
                        column_type=column_type,
                        context=f"Found in {table}.{column_name}",
                    )
                )
        return hits
