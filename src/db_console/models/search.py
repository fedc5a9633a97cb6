"""Content search request and result models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchFilters(BaseModel):
    """Where to look and which column types to keep."""

    model_config = ConfigDict(populate_by_name=True)

    search_in: Literal["all", "tables", "data"] = Field(
        default="all", alias="searchIn"
    )
    data_type: Literal["all", "text", "number", "date"] = Field(
        default="all", alias="dataType"
    )
    case_sensitive: bool = Field(default=False, alias="caseSensitive")

    @property
    def include_tables(self) -> bool:
        return self.search_in in ("all", "tables")

    @property
    def include_data(self) -> bool:
        return self.search_in in ("all", "data")


class SearchRequest(BaseModel):
    """A content search over one database."""

    database: str = Field(..., description="Database to search")
    query: str = Field(..., description="Search term")
    filters: SearchFilters = Field(default_factory=SearchFilters)

    @field_validator("query")
    @classmethod
    def reject_blank_term(cls, v: str) -> str:
        """An empty term would match every value."""
        if not v.strip():
            raise ValueError("Search term must not be empty")
        return v


class SearchHit(BaseModel):
    """One match."""

    model_config = ConfigDict(populate_by_name=True)

    table: str
    column: str = Field(..., description="Column name, or table_name for name hits")
    row: int = Field(..., description="1-based sampled row ordinal, 0 for names")
    value: str
    type: str = Field(..., description="Bucket: table, text, number, date, other")
    column_type: str = Field(default="", alias="columnType")
    context: str


class SearchResult(BaseModel):
    """Aggregated search outcome."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    hits: list[SearchHit] = Field(default_factory=list)
    total_hits: int = Field(default=0, alias="totalHits")
    execution_time: float = Field(default=0.0, alias="executionTime")
    message: str = ""
