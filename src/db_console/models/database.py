"""Database descriptor model."""

from typing import Optional

from pydantic import BaseModel, Field

UNKNOWN = "Unknown"


class DatabaseInfo(BaseModel):
    """A database on the backend, as listed by the console."""

    name: str = Field(..., description="Database name")
    size: str = Field(default=UNKNOWN, description="Human-readable size")
    size_bytes: Optional[int] = Field(
        None, serialization_alias="sizeBytes", description="Size in bytes"
    )
    created: str = Field(
        default=UNKNOWN, description="Creation date (YYYY-MM-DD) or Unknown"
    )

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "name": "shop",
                    "size": "2.50 MB",
                    "sizeBytes": 2621440,
                    "created": "Unknown",
                }
            ]
        },
    }
