"""Query execution result model."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class QueryResult(BaseModel):
    """Result of a raw query execution."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True, description="Whether the statement ran")
    rows: list[dict[str, Any]] = Field(
        default_factory=list, description="Result rows as dictionaries"
    )
    columns: list[str] = Field(default_factory=list, description="Column names")
    execution_time: float = Field(
        ..., alias="executionTime", description="Wall-clock time in milliseconds"
    )
    affected_rows: int = Field(
        default=0, alias="affectedRows", description="Rows returned or affected"
    )

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows
