"""Database connection management with SQLAlchemy."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from db_console.adapters import BaseAdapter, create_adapter
from db_console.exceptions import ConfigurationMissing, ConnectionFailure
from db_console.models.config import ConnectionConfig, load_config
from db_console.models.profile import DialectProfile

logger = logging.getLogger(__name__)

# Errors a driver raises when the server cannot be reached
CONNECT_ERRORS = (DBAPIError, OSError, asyncio.TimeoutError)


async def execute_raw(conn: AsyncConnection, sql: str) -> CursorResult:
    """
    Send SQL text to the driver as is.

    ``no_parameters`` keeps format-paramstyle drivers from treating a
    literal ``%`` as a placeholder.
    """
    return await conn.exec_driver_sql(
        sql, execution_options={"no_parameters": True}
    )


class DatabaseConnection:
    """
    Owns the long-lived administrative engine and opens scoped connections.

    The administrative engine is pooled and runs in autocommit mode so that
    CREATE/DROP DATABASE work on every dialect. Scoped connections get a
    fresh unpooled engine bound to one database and are always disposed.
    """

    def __init__(
        self,
        config: Optional[ConnectionConfig] = None,
        env_file: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize database connection.

        Args:
            config: Connection configuration; loaded on initialize() when None
            env_file: Config file passed to load_config()
        """
        self.config = config
        self.env_file = env_file
        self.engine: Optional[AsyncEngine] = None
        self.adapter: Optional[BaseAdapter] = None
        self._initialized = False
        self._mock = False

    async def initialize(self) -> bool:
        """
        Load configuration, create the administrative engine and check it answers.

        Returns:
            True when a live backend answered, False when running on fixtures.
            The outcome is fixed for the lifetime of the object.
        """
        if self._initialized:
            return not self._mock
        self._initialized = True

        if self.config is None:
            try:
                self.config = load_config(self.env_file)
            except ConfigurationMissing as e:
                logger.warning(f"{e.message}; serving fixture data")
                self._mock = True
                return False

        self.adapter = create_adapter(self.config.dialect)
        self.engine = self._create_engine(database=None, pooled=True)

        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except CONNECT_ERRORS as e:
            logger.warning(
                f"Database unreachable at {self.config.sanitized_url}: {e}; "
                "serving fixture data"
            )
            await self.engine.dispose()
            self.engine = None
            self._mock = True
            return False

        logger.info(
            f"Connected to {self.profile.name} at {self.config.sanitized_url}"
        )
        return True

    def _create_engine(
        self, database: Optional[str], pooled: bool, autocommit: bool = False
    ) -> AsyncEngine:
        assert self.config is not None and self.adapter is not None
        options: dict[str, Any] = {
            "echo": self.config.echo_sql,
            "connect_args": self.adapter.connect_args(self.config.connect_timeout),
        }
        if pooled:
            options.update(
                pool_size=self.config.pool_size,
                max_overflow=self.config.max_overflow,
                pool_timeout=self.config.pool_timeout,
                pool_pre_ping=True,  # Verify connections before using
                isolation_level="AUTOCOMMIT",
            )
        else:
            options["poolclass"] = NullPool
            if autocommit:
                options["isolation_level"] = "AUTOCOMMIT"
        return create_async_engine(self.config.url_for(database), **options)

    async def dispose(self) -> None:
        """Dispose of the administrative pool."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None

    def _require_live(self) -> AsyncEngine:
        if self.engine is None:
            raise RuntimeError(
                "DatabaseConnection has no live engine. Call initialize() first."
            )
        return self.engine

    @asynccontextmanager
    async def admin(self) -> AsyncGenerator[AsyncConnection, None]:
        """
        Connection from the administrative pool (autocommit).

        Raises:
            ConnectionFailure: If the pool cannot hand out a connection
        """
        engine = self._require_live()
        try:
            conn = await engine.connect()
        except CONNECT_ERRORS as e:
            raise ConnectionFailure(
                f"Cannot connect to {self.profile.name} server",
                context={"database": self.profile.admin_database},
                cause=e,
            ) from e
        try:
            yield conn
        finally:
            await conn.close()

    async def admin_query(
        self, sql: str, params: Optional[dict[str, Any]] = None
    ) -> list[dict[str, Any]]:
        """Run a query on the administrative database and return rows as dicts."""
        logger.debug(f"admin query: {sql}")
        async with self.admin() as conn:
            result = await conn.execute(text(sql), params or {})
            if not result.returns_rows:
                return []
            return [dict(row) for row in result.mappings().all()]

    @asynccontextmanager
    async def scoped(
        self, database: str, transactional: bool = True
    ) -> AsyncGenerator[AsyncConnection, None]:
        """
        Connection bound to one database.

        With ``transactional`` the block runs inside one transaction that
        commits when the block exits normally and rolls back when it raises.
        Without it the connection is in autocommit mode and no BEGIN is sent,
        so statements PostgreSQL refuses inside a transaction block (CREATE
        DATABASE, VACUUM) still run. The connection and its engine are
        released on every exit path.

        Raises:
            ConnectionFailure: If the database cannot be reached
        """
        self._require_live()
        engine = self._create_engine(
            database=database, pooled=False, autocommit=not transactional
        )
        try:
            try:
                conn = await engine.connect()
            except CONNECT_ERRORS as e:
                raise ConnectionFailure(
                    f"Cannot connect to database '{database}'",
                    context={"database": database},
                    cause=e,
                ) from e
            try:
                if transactional:
                    async with conn.begin():
                        yield conn
                else:
                    yield conn
            finally:
                await conn.close()
        finally:
            await engine.dispose()

    @property
    def profile(self) -> DialectProfile:
        if self.adapter is None:
            raise RuntimeError("Dialect is not known before initialize()")
        return self.adapter.profile

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_mock(self) -> bool:
        """Whether operations are answered from fixture data."""
        return self._mock

    async def test_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection successful, False otherwise
        """
        if self.engine is None:
            return False
        try:
            async with self.admin() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (ConnectionFailure, DBAPIError) as e:
            logger.warning(f"Connection test failed: {e}")
            return False

    async def status(self) -> dict[str, Any]:
        """Connectivity summary for the status endpoint."""
        connected = await self.test_connection()
        return {
            "connected": connected,
            "mock": self._mock,
            "dialect": self.adapter.name if self.adapter else None,
            "host": self.config.host if self.config else None,
            "port": self.config.resolved_port if self.config else None,
        }

    async def __aenter__(self) -> "DatabaseConnection":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.dispose()
