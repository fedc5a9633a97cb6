"""Connection configuration model and loader."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from dotenv import dotenv_values, load_dotenv
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.engine.url import URL, make_url

from db_console.exceptions import ConfigurationMissing
from db_console.models.profile import PROFILES, DialectProfile

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".db_console" / "config.env"

# Map common dialect spellings to the supported dialect names
DIALECT_VARIATIONS = {
    "postgresql": "postgresql",
    "postgres": "postgresql",
    "psql": "postgresql",
    "pg": "postgresql",
    "pgsql": "postgresql",
    "mysql": "mysql",
    "mariadb": "mysql",
}


def normalize_dialect(value: str) -> str:
    """
    Normalize a dialect spelling (or SQLAlchemy drivername) to a dialect name.

    Raises:
        ValueError: If the dialect is not supported
    """
    base = value.split("+")[0].strip().lower()
    dialect = DIALECT_VARIATIONS.get(base)
    if dialect is None:
        raise ValueError(
            f"Unsupported database dialect: {value}. "
            f"Supported: {', '.join(sorted(PROFILES))}"
        )
    return dialect


class ConnectionConfig(BaseModel):
    """Configuration for the backend connection and pooling."""

    dialect: str = Field(..., description="Database dialect (mysql, postgresql)")
    host: str = Field(default="localhost", description="Server host")
    port: Optional[int] = Field(
        default=None, ge=1, le=65535, description="Server port (dialect default)"
    )
    user: str = Field(..., description="Administrative user")
    password: str = Field(default="", description="Administrative password")
    pool_size: int = Field(default=10, ge=1, le=50, description="Connection pool size")
    max_overflow: int = Field(
        default=0, ge=0, le=100, description="Maximum overflow connections"
    )
    pool_timeout: int = Field(
        default=30, ge=1, le=300, description="Pool checkout timeout in seconds"
    )
    connect_timeout: int = Field(
        default=5, ge=1, le=120, description="Connect timeout in seconds"
    )
    echo_sql: bool = Field(default=False, description="Echo SQL statements")

    @field_validator("dialect")
    @classmethod
    def validate_dialect(cls, v: str) -> str:
        """Accept dialect aliases and store the normalized name."""
        return normalize_dialect(v)

    @property
    def profile(self) -> DialectProfile:
        """Dialect profile for this configuration."""
        return PROFILES[self.dialect]

    @property
    def resolved_port(self) -> int:
        """Configured port or the dialect default."""
        return self.port or self.profile.default_port

    def url_for(self, database: Optional[str] = None) -> URL:
        """
        Build the SQLAlchemy URL for one database.

        Args:
            database: Database name (None for the administrative database)
        """
        return URL.create(
            drivername=self.profile.drivername,
            username=self.user,
            password=self.password or None,
            host=self.host,
            port=self.resolved_port,
            database=database or self.profile.admin_database,
        )

    @property
    def sanitized_url(self) -> str:
        """Administrative URL with the password masked."""
        return self.url_for().render_as_string(hide_password=True)

    @classmethod
    def from_url(cls, url: str, **overrides) -> "ConnectionConfig":
        """
        Build a configuration from a connection URL.

        Any driver suffix is replaced by the dialect's async driver.
        """
        parsed = make_url(url)
        return cls(
            dialect=parsed.drivername,
            host=parsed.host or "localhost",
            port=parsed.port,
            user=parsed.username or "",
            password=parsed.password or "",
            **overrides,
        )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "dialect": "mysql",
                    "host": "localhost",
                    "port": 3306,
                    "user": "root",
                    "password": "secret",
                    "pool_size": 10,
                }
            ]
        }
    }


def _pool_overrides() -> dict:
    overrides: dict = {}
    env_map = {
        "DB_POOL_SIZE": "pool_size",
        "DB_MAX_OVERFLOW": "max_overflow",
        "DB_POOL_TIMEOUT": "pool_timeout",
        "DB_CONNECT_TIMEOUT": "connect_timeout",
    }
    for env_name, field_name in env_map.items():
        value = os.getenv(env_name)
        if value:
            overrides[field_name] = int(value)

    echo = os.getenv("DB_ECHO_SQL")
    if echo:
        overrides["echo_sql"] = echo.lower() in ("1", "true", "yes")
    return overrides


def _config_from_file(path: Path) -> ConnectionConfig:
    """Parse the key=value config file written by the server installer."""
    values = dotenv_values(path)

    db_command = values.get("DB_CMD") or ""
    if "psql" in db_command or (values.get("DB_TYPE") or "").lower() in (
        "postgresql",
        "postgres",
    ):
        dialect = "postgresql"
        default_user = "postgres"
    else:
        dialect = "mysql"
        default_user = "root"

    password = values.get("DB_ROOT_PASSWORD") or ""
    if password == "REQUIRED":
        password = ""

    port = values.get("DB_PORT")
    return ConnectionConfig(
        dialect=dialect,
        host=values.get("DB_HOST") or "localhost",
        port=int(port) if port else None,
        user=values.get("DB_ROOT_USER") or default_user,
        password=password,
        **_pool_overrides(),
    )


def load_config(env_file: Optional[Union[str, Path]] = None) -> ConnectionConfig:
    """
    Load the connection configuration.

    Order: ``DATABASE_URL`` / ``DB_CONSOLE_URL`` environment variables, then the
    key=value config file (``env_file``, ``DB_CONSOLE_CONFIG`` or
    ``~/.db_console/config.env``).

    Raises:
        ConfigurationMissing: If no configuration source exists
        ValueError: If a configuration source is malformed
    """
    load_dotenv()

    url = os.getenv("DATABASE_URL") or os.getenv("DB_CONSOLE_URL")
    if url:
        logger.info("Loading database configuration from connection URL")
        return ConnectionConfig.from_url(url, **_pool_overrides())

    candidate = Path(
        env_file or os.getenv("DB_CONSOLE_CONFIG") or DEFAULT_CONFIG_FILE
    ).expanduser()
    if candidate.is_file():
        logger.info(f"Loading database configuration from {candidate}")
        return _config_from_file(candidate)

    raise ConfigurationMissing(
        "No database configuration found",
        context={"config_file": str(candidate)},
    )
