"""Table template and table creation request models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from db_console.models.column import FieldDefinition


class TableTemplate(BaseModel):
    """A canned table schema rendered for one dialect."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Display name")
    description: str = Field(..., description="What the table is for")
    schema_: str = Field(
        ..., alias="schema", description="Column-definition text for CREATE TABLE"
    )


class TableCreateRequest(BaseModel):
    """Table creation payload: free-form schema text, a template key or fields."""

    model_config = ConfigDict(populate_by_name=True)

    database: str = Field(..., description="Target database")
    name: str = Field(..., description="Table name")
    schema_: Optional[str] = Field(
        None, alias="schema", description="Column-definition text"
    )
    template: Optional[str] = Field(None, description="Template key")
    fields: list[FieldDefinition] = Field(
        default_factory=list, description="Field builder rows"
    )
