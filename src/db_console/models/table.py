"""Table, column and index descriptor models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from db_console.models.column import KeyRole


class TableInfo(BaseModel):
    """A table or view inside one database."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Table name")
    rows: int = Field(default=0, description="Estimated row count")
    size: str = Field(default="0.00 B", description="Human-readable size")
    size_bytes: Optional[int] = Field(
        None, serialization_alias="sizeBytes", description="Data + index bytes"
    )
    type: str = Field(default="table", description="Logical kind (table, view)")


class ColumnInfo(BaseModel):
    """A column as described by the catalog."""

    name: str = Field(..., description="Column name")
    type: str = Field(..., description="Rendered type, e.g. VARCHAR(255)")
    nullable: bool = Field(..., description="Whether column allows NULL")
    key: KeyRole = Field(default=KeyRole.NONE, description="Key role")
    default: Optional[str] = Field(None, description="Default value")
    extra: str = Field(default="", description="Extra modifiers")


class IndexInfo(BaseModel):
    """An index with its member columns in index order."""

    name: str = Field(..., description="Index name")
    columns: list[str] = Field(default_factory=list, description="Member columns")
    type: str = Field(default="BTREE", description="Index method")
    unique: bool = Field(default=False, description="Whether index enforces uniqueness")


class IndexColumnRow(BaseModel):
    """One (index, column) catalog row, before grouping."""

    index_name: str
    column_name: str
    position: int
    method: Optional[str] = None
    unique: bool = False


class TableStructure(BaseModel):
    """Columns and indexes of one table."""

    columns: list[ColumnInfo] = Field(default_factory=list)
    indexes: list[IndexInfo] = Field(default_factory=list)

    def get_column(self, name: str) -> Optional[ColumnInfo]:
        """Get column by name."""
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def get_index(self, name: str) -> Optional[IndexInfo]:
        """Get index by name."""
        for idx in self.indexes:
            if idx.name == name:
                return idx
        return None

    @property
    def column_count(self) -> int:
        return len(self.columns)
