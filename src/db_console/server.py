"""Database console service

The service facade the HTTP layer calls into: one DatabaseService is built at
startup, initialized once (live backend or fixture data) and passed to every
request handler. Each handler takes the request arguments as a dict and
returns a JSON-ready dict.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from db_console.adapters import BaseAdapter
from db_console.core import (
    CatalogSearchSource,
    ContentSearch,
    DatabaseConnection,
    MetadataInspector,
    QueryExecutor,
    SchemaMutator,
)
from db_console.exceptions import DatabaseConsoleError, IdentifierValidationError
from db_console.fixtures import (
    MOCK_DATABASES,
    MOCK_STRUCTURE,
    MOCK_TABLES,
    FixtureSearchSource,
    mock_message,
    mock_query_result,
)
from db_console.models.column import ColumnSpec
from db_console.models.config import ConnectionConfig
from db_console.models.search import SearchRequest
from db_console.models.template import TableCreateRequest
from db_console.templates import get_template, get_templates
from db_console.utils import (
    RESERVED_DATABASE_NAMES,
    RESERVED_TABLE_NAMES,
    dumps,
    ensure_not_reserved,
    validate_identifiers,
)

logger = logging.getLogger(__name__)

# Template dialect when no backend decides it
FIXTURE_DIALECT = "mysql"

Payload = dict[str, Any]


def _dump(model: Any) -> Payload:
    return model.model_dump(mode="json", by_alias=True)


def _require(arguments: dict[str, Any], *names: str) -> None:
    missing = [name for name in names if not arguments.get(name)]
    if missing:
        raise IdentifierValidationError(
            f"Missing required argument(s): {', '.join(missing)}",
            context={"missing": missing},
        )


class DatabaseService:
    """Owns the connection and every component built on it."""

    def __init__(
        self,
        config: Optional[ConnectionConfig] = None,
        env_file: Optional[Union[str, Path]] = None,
        connection: Optional[DatabaseConnection] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Connection configuration (loaded from the environment when None)
            env_file: Config file used when loading from the environment
            connection: Pre-built connection manager
        """
        self.connection = connection or DatabaseConnection(config, env_file)
        self.adapter: Optional[BaseAdapter] = None
        self.inspector: Optional[MetadataInspector] = None
        self.executor: Optional[QueryExecutor] = None
        self.mutator: Optional[SchemaMutator] = None
        self.search: Optional[ContentSearch] = None

    async def initialize(self) -> bool:
        """
        Select live or fixture mode, once.

        Returns:
            True for a live backend
        """
        live = await self.connection.initialize()
        if live:
            assert self.connection.adapter is not None
            self.adapter = self.connection.adapter
            self.inspector = MetadataInspector(self.connection, self.adapter)
            self.executor = QueryExecutor(self.connection, self.adapter)
            self.mutator = SchemaMutator(self.connection, self.adapter, self.inspector)
            self.search = ContentSearch(
                CatalogSearchSource(self.inspector, self.executor)
            )
            logger.info(f"Database service ready ({self.adapter.name})")
        else:
            self.search = ContentSearch(FixtureSearchSource())
            logger.warning("Database service running on fixture data")
        return live

    @property
    def is_mock(self) -> bool:
        return self.connection.is_mock

    async def _respond(
        self,
        operation: str,
        context: dict[str, Any],
        call: Callable[[], Awaitable[Payload]],
    ) -> Payload:
        """
        Run a handler body and reduce any failure to a structured payload.

        Error payloads carry ``error``, ``code``, ``partial`` and the HTTP
        ``status`` the caller should answer with.
        """
        try:
            payload = await call()
        except ValidationError as e:
            message = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
                for err in e.errors()
            )
            logger.warning(f"{operation} rejected: {message} {context}")
            return {
                "error": message,
                "code": IdentifierValidationError.__name__,
                "partial": False,
                "status": IdentifierValidationError.status,
            }
        except DatabaseConsoleError as e:
            details = {"operation": operation, **context, **e.context}
            if e.status >= 500:
                logger.error(f"{operation} failed: {e.message} {details}")
            else:
                logger.warning(f"{operation} rejected: {e.message} {details}")
            return {**e.to_dict(), "status": e.status}
        except Exception as e:
            logger.error(f"{operation} failed unexpectedly {context}: {e}", exc_info=True)
            return {
                "error": f"{operation} failed",
                "code": "InternalError",
                "partial": False,
                "status": 500,
            }

        payload.setdefault("mock", self.is_mock)
        return payload

    # ------------------------------------------------------------------
    # Listings and structure
    # ------------------------------------------------------------------

    async def handle_list_databases(
        self, arguments: Optional[dict[str, Any]] = None
    ) -> Payload:
        async def call() -> Payload:
            if self.is_mock:
                return {"databases": [_dump(db) for db in MOCK_DATABASES]}
            assert self.inspector is not None
            databases = await self.inspector.list_databases()
            return {"databases": [_dump(db) for db in databases]}

        return await self._respond("list_databases", {}, call)

    async def handle_list_tables(self, arguments: dict[str, Any]) -> Payload:
        database = arguments.get("database")

        async def call() -> Payload:
            _require(arguments, "database")
            if self.is_mock:
                return {"tables": [_dump(table) for table in MOCK_TABLES]}
            assert self.inspector is not None
            tables = await self.inspector.list_tables(database)
            return {"tables": [_dump(table) for table in tables]}

        return await self._respond("list_tables", {"database": database}, call)

    async def handle_table_structure(self, arguments: dict[str, Any]) -> Payload:
        database = arguments.get("database")
        table = arguments.get("table")

        async def call() -> Payload:
            _require(arguments, "database", "table")
            if self.is_mock:
                return _dump(MOCK_STRUCTURE)
            assert self.inspector is not None
            return _dump(await self.inspector.describe_table(database, table))

        return await self._respond(
            "table_structure", {"database": database, "table": table}, call
        )

    async def handle_execute_query(self, arguments: dict[str, Any]) -> Payload:
        """Unrestricted SQL passthrough; access must be gated by the caller."""
        database = arguments.get("database")
        query = arguments.get("query")

        async def call() -> Payload:
            _require(arguments, "database", "query")
            if self.is_mock:
                result = mock_query_result(query)
            else:
                assert self.executor is not None
                result = await self.executor.execute(database, query)
            return _dump(result)

        return await self._respond("execute_query", {"database": database}, call)

    # ------------------------------------------------------------------
    # Databases and tables
    # ------------------------------------------------------------------

    async def handle_create_database(self, arguments: dict[str, Any]) -> Payload:
        name = arguments.get("name")

        async def call() -> Payload:
            _require(arguments, "name")
            message = f"Database '{name}' created successfully"
            if self.is_mock:
                validate_identifiers(database=name)
                ensure_not_reserved(name, RESERVED_DATABASE_NAMES, "database")
                return {"success": True, "message": mock_message(message)}
            assert self.mutator is not None
            statements = await self.mutator.create_database(name)
            return {"success": True, "message": message, "statements": statements}

        return await self._respond("create_database", {"database": name}, call)

    async def handle_delete_database(self, arguments: dict[str, Any]) -> Payload:
        name = arguments.get("name")

        async def call() -> Payload:
            _require(arguments, "name")
            message = f"Database '{name}' deleted successfully"
            if self.is_mock:
                validate_identifiers(database=name)
                ensure_not_reserved(name, RESERVED_DATABASE_NAMES, "database")
                return {"success": True, "message": mock_message(message)}
            assert self.mutator is not None
            statements = await self.mutator.delete_database(name)
            return {"success": True, "message": message, "statements": statements}

        return await self._respond("delete_database", {"database": name}, call)

    async def handle_create_table(self, arguments: dict[str, Any]) -> Payload:
        """Create from free-form ``schema`` text, a ``template`` key or ``fields``."""
        database = arguments.get("database")
        name = arguments.get("name")

        async def call() -> Payload:
            request = TableCreateRequest.model_validate(arguments)
            if not (request.schema_ or request.template or request.fields):
                raise IdentifierValidationError(
                    "Table schema, template or fields are required",
                    context={"database": database, "table": name},
                )
            message = (
                f"Table '{request.name}' created successfully in database "
                f"'{request.database}'"
            )
            if self.is_mock:
                validate_identifiers(database=request.database, table=request.name)
                ensure_not_reserved(request.name, RESERVED_TABLE_NAMES, "table")
                if request.template:
                    get_template(request.template, FIXTURE_DIALECT)
                return {"success": True, "message": mock_message(message)}

            assert self.mutator is not None
            if request.schema_:
                statements = await self.mutator.create_table(
                    request.database, request.name, request.schema_
                )
            elif request.template:
                statements = await self.mutator.create_table_from_template(
                    request.database, request.name, request.template
                )
            else:
                statements = await self.mutator.create_table_from_fields(
                    request.database, request.name, request.fields
                )
            return {"success": True, "message": message, "statements": statements}

        return await self._respond(
            "create_table", {"database": database, "table": name}, call
        )

    async def handle_delete_table(self, arguments: dict[str, Any]) -> Payload:
        database = arguments.get("database")
        name = arguments.get("name")

        async def call() -> Payload:
            _require(arguments, "database", "name")
            message = f"Table '{name}' deleted successfully from database '{database}'"
            if self.is_mock:
                validate_identifiers(database=database, table=name)
                ensure_not_reserved(name, RESERVED_TABLE_NAMES, "table")
                return {"success": True, "message": mock_message(message)}
            assert self.mutator is not None
            statements = await self.mutator.delete_table(database, name)
            return {"success": True, "message": message, "statements": statements}

        return await self._respond(
            "delete_table", {"database": database, "table": name}, call
        )

    async def handle_table_templates(
        self, arguments: Optional[dict[str, Any]] = None
    ) -> Payload:
        async def call() -> Payload:
            dialect = self.adapter.name if self.adapter else FIXTURE_DIALECT
            templates = get_templates(dialect)
            return {
                "templates": {key: _dump(tpl) for key, tpl in templates.items()}
            }

        return await self._respond("table_templates", {}, call)

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    async def handle_add_column(self, arguments: dict[str, Any]) -> Payload:
        database = arguments.get("database")
        table = arguments.get("table")

        async def call() -> Payload:
            _require(arguments, "database", "table", "column")
            spec = ColumnSpec.model_validate(arguments["column"])
            message = f"Column '{spec.name}' added successfully to table '{table}'"
            if self.is_mock:
                validate_identifiers(database=database, table=table, column=spec.name)
                return {"success": True, "message": mock_message(message)}
            assert self.mutator is not None
            statements = await self.mutator.add_column(database, table, spec)
            return {"success": True, "message": message, "statements": statements}

        return await self._respond(
            "add_column", {"database": database, "table": table}, call
        )

    async def handle_update_column(self, arguments: dict[str, Any]) -> Payload:
        database = arguments.get("database")
        table = arguments.get("table")

        async def call() -> Payload:
            _require(arguments, "database", "table", "column")
            spec = ColumnSpec.model_validate(arguments["column"])
            message = f"Column '{spec.name}' updated successfully in table '{table}'"
            if self.is_mock:
                validate_identifiers(database=database, table=table, column=spec.name)
                return {"success": True, "message": mock_message(message)}
            assert self.mutator is not None
            statements = await self.mutator.update_column(database, table, spec)
            return {"success": True, "message": message, "statements": statements}

        return await self._respond(
            "update_column", {"database": database, "table": table}, call
        )

    async def handle_delete_column(self, arguments: dict[str, Any]) -> Payload:
        database = arguments.get("database")
        table = arguments.get("table")
        column = arguments.get("column")

        async def call() -> Payload:
            _require(arguments, "database", "table", "column")
            message = f"Column '{column}' deleted successfully from table '{table}'"
            if self.is_mock:
                validate_identifiers(database=database, table=table, column=column)
                return {"success": True, "message": mock_message(message)}
            assert self.mutator is not None
            statements = await self.mutator.delete_column(database, table, column)
            return {"success": True, "message": message, "statements": statements}

        return await self._respond(
            "delete_column",
            {"database": database, "table": table, "column": column},
            call,
        )

    # ------------------------------------------------------------------
    # Search and status
    # ------------------------------------------------------------------

    async def handle_search(self, arguments: dict[str, Any]) -> Payload:
        database = arguments.get("database")

        async def call() -> Payload:
            request = SearchRequest.model_validate(arguments)
            validate_identifiers(database=request.database)
            assert self.search is not None
            return _dump(await self.search.search(request))

        return await self._respond("search", {"database": database}, call)

    async def handle_status(
        self, arguments: Optional[dict[str, Any]] = None
    ) -> Payload:
        async def call() -> Payload:
            if self.is_mock:
                return {
                    "connected": False,
                    "type": "none",
                    "message": "Database not initialized - using mock data",
                }
            status = await self.connection.status()
            status["type"] = status.pop("dialect")
            return status

        return await self._respond("status", {}, call)

    async def cleanup(self) -> None:
        """Cleanup resources."""
        await self.connection.dispose()
        logger.info("Database service cleaned up")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="db-console", description="Administer MySQL and PostgreSQL databases"
    )
    parser.add_argument("--env-file", help="Connection config file (key=value)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Show connection status")
    commands.add_parser("databases", help="List databases")
    commands.add_parser("templates", help="List table templates")

    cmd = commands.add_parser("tables", help="List tables of a database")
    cmd.add_argument("database")

    cmd = commands.add_parser("structure", help="Describe a table")
    cmd.add_argument("database")
    cmd.add_argument("table")

    cmd = commands.add_parser("query", help="Execute a SQL statement")
    cmd.add_argument("database")
    cmd.add_argument("query")

    for name in ("create-database", "drop-database"):
        cmd = commands.add_parser(name)
        cmd.add_argument("name")

    cmd = commands.add_parser("create-table", help="Create a table")
    cmd.add_argument("database")
    cmd.add_argument("name")
    source = cmd.add_mutually_exclusive_group(required=True)
    source.add_argument("--schema", help="Column definitions")
    source.add_argument("--template", help="Template key")

    cmd = commands.add_parser("drop-table")
    cmd.add_argument("database")
    cmd.add_argument("name")

    for name in ("add-column", "update-column"):
        cmd = commands.add_parser(name)
        cmd.add_argument("database")
        cmd.add_argument("table")
        cmd.add_argument("--name", required=True)
        cmd.add_argument("--type", required=True)
        cmd.add_argument("--params", help="Type parameters, e.g. 255 or 10,2")
        cmd.add_argument("--not-null", action="store_true")
        cmd.add_argument("--key", default="", choices=["", "PRI", "UNI", "MUL"])
        cmd.add_argument("--default")
        cmd.add_argument("--extra", default="")
        if name == "update-column":
            cmd.add_argument("--original-name", help="Current name when renaming")

    cmd = commands.add_parser("drop-column")
    cmd.add_argument("database")
    cmd.add_argument("table")
    cmd.add_argument("column")

    cmd = commands.add_parser("search", help="Search table names and sampled rows")
    cmd.add_argument("database")
    cmd.add_argument("query")
    cmd.add_argument("--in", dest="search_in", default="all",
                     choices=["all", "tables", "data"])
    cmd.add_argument("--type", dest="data_type", default="all",
                     choices=["all", "text", "number", "date"])
    cmd.add_argument("--case-sensitive", action="store_true")

    return parser


def _column_arguments(args: argparse.Namespace) -> dict[str, Any]:
    column = {
        "name": args.name,
        "type": args.type,
        "typeParams": args.params,
        "nullable": not args.not_null,
        "key": args.key,
        "default": args.default,
        "extra": args.extra,
    }
    if getattr(args, "original_name", None):
        column["originalName"] = args.original_name
    return {"database": args.database, "table": args.table, "column": column}


async def dispatch(service: DatabaseService, args: argparse.Namespace) -> Payload:
    """Route a parsed command line to its handler."""
    command = args.command
    if command == "status":
        return await service.handle_status()
    if command == "databases":
        return await service.handle_list_databases()
    if command == "templates":
        return await service.handle_table_templates()
    if command == "tables":
        return await service.handle_list_tables({"database": args.database})
    if command == "structure":
        return await service.handle_table_structure(
            {"database": args.database, "table": args.table}
        )
    if command == "query":
        return await service.handle_execute_query(
            {"database": args.database, "query": args.query}
        )
    if command == "create-database":
        return await service.handle_create_database({"name": args.name})
    if command == "drop-database":
        return await service.handle_delete_database({"name": args.name})
    if command == "create-table":
        return await service.handle_create_table(
            {
                "database": args.database,
                "name": args.name,
                "schema": args.schema,
                "template": args.template,
            }
        )
    if command == "drop-table":
        return await service.handle_delete_table(
            {"database": args.database, "name": args.name}
        )
    if command == "add-column":
        return await service.handle_add_column(_column_arguments(args))
    if command == "update-column":
        return await service.handle_update_column(_column_arguments(args))
    if command == "drop-column":
        return await service.handle_delete_column(
            {"database": args.database, "table": args.table, "column": args.column}
        )
    if command == "search":
        return await service.handle_search(
            {
                "database": args.database,
                "query": args.query,
                "filters": {
                    "searchIn": args.search_in,
                    "dataType": args.data_type,
                    "caseSensitive": args.case_sensitive,
                },
            }
        )
    raise ValueError(f"Unknown command: {command}")


async def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the command line."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger("db_console").setLevel(logging.DEBUG)

    service = DatabaseService(env_file=args.env_file)
    try:
        await service.initialize()
        payload = await dispatch(service, args)
    finally:
        await service.cleanup()

    print(dumps(payload))
    return 1 if "error" in payload else 0


def cli_entry() -> None:
    """
    Synchronous entry point for console script.

    This function is called by the 'db-console' console script.
    """
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


if __name__ == "__main__":
    cli_entry()
