"""Dialect profiles: the fixed facts about each supported backend family."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DialectProfile(BaseModel):
    """Identifies a backend family and its fixed rendering facts.

    Chosen once at startup and immutable for the process lifetime.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Dialect name (mysql, postgresql)")
    quote_char: str = Field(..., description="Identifier quoting character")
    admin_database: Optional[str] = Field(
        None, description="Database the administrative pool connects to"
    )
    system_databases: frozenset[str] = Field(
        default_factory=frozenset,
        description="Databases excluded from listings",
    )
    default_port: int = Field(..., description="Default server port")
    async_driver: str = Field(..., description="SQLAlchemy async driver name")
    transactional_ddl: bool = Field(
        ..., description="Whether DDL can be rolled back inside a transaction"
    )
    supports_session_switch: bool = Field(
        ..., description="Whether a session can switch databases (USE)"
    )

    @property
    def drivername(self) -> str:
        """SQLAlchemy drivername, e.g. mysql+aiomysql."""
        return f"{self.name}+{self.async_driver}"


MYSQL_PROFILE = DialectProfile(
    name="mysql",
    quote_char="`",
    admin_database="information_schema",
    system_databases=frozenset(
        {"information_schema", "mysql", "performance_schema", "sys", "phpmyadmin"}
    ),
    default_port=3306,
    async_driver="aiomysql",
    transactional_ddl=False,
    supports_session_switch=True,
)

POSTGRES_PROFILE = DialectProfile(
    name="postgresql",
    quote_char='"',
    admin_database="postgres",
    system_databases=frozenset({"postgres", "template0", "template1"}),
    default_port=5432,
    async_driver="asyncpg",
    transactional_ddl=True,
    supports_session_switch=False,
)

PROFILES: dict[str, DialectProfile] = {
    MYSQL_PROFILE.name: MYSQL_PROFILE,
    POSTGRES_PROFILE.name: POSTGRES_PROFILE,
}
