"""Exception hierarchy for db-console operations.

Every failure that leaves the core is one of these types. Each carries a
``code`` for the caller, a ``context`` dict with the operation details that
were logged, and a ``status`` hint the HTTP collaborator can use as the
response code.

Classes:
    DatabaseConsoleError: Base exception
    ConfigurationMissing: No connection configuration (selects mock mode)
    ConnectionFailure: Backend unreachable
    IdentifierValidationError: Bad name, rejected before any SQL is rendered
    DialectUnsupportedOperation: No rendering for the active dialect
    BackendExecutionError: Backend rejected a statement
    PartialMutationFailure: A later statement of a sequence failed after
        earlier ones were committed
"""

from typing import Any, Optional


class DatabaseConsoleError(Exception):
    """Base exception for all db-console operations."""

    status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error description
            code: Error code for categorization (defaults to class name)
            context: Operation context (operation, database, table, statement)
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.code: str = code or self.__class__.__name__
        self.context: dict[str, Any] = context or {}
        self.cause: Optional[BaseException] = cause

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Structured payload safe to hand to the UI (no stack traces)."""
        return {
            "error": self.message,
            "code": self.code,
            "partial": False,
        }


class ConfigurationMissing(DatabaseConsoleError):
    """No connection configuration was found.

    Not a failure: the service switches to fixture data.
    """

    status = 503


class ConnectionFailure(DatabaseConsoleError):
    """The backend could not be reached."""

    status = 503


class IdentifierValidationError(DatabaseConsoleError):
    """A database, table or column name failed validation."""

    status = 400


class DialectUnsupportedOperation(DatabaseConsoleError):
    """The operation has no rendering for the active dialect."""

    status = 501


class BackendExecutionError(DatabaseConsoleError):
    """The backend rejected a statement."""

    def __init__(
        self,
        message: str,
        *,
        backend_code: Optional[Any] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.backend_code = backend_code

    @staticmethod
    def describe_driver_error(error: BaseException) -> tuple[str, Optional[Any]]:
        """
        Message and code of a driver error, unwrapped from SQLAlchemy.

        MySQL drivers put the error number in ``args[0]``; asyncpg exposes
        the SQLSTATE.
        """
        orig = getattr(error, "orig", None) or error
        code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if code is None and orig.args and isinstance(orig.args[0], int):
            code = orig.args[0]
        if len(orig.args) > 1 and isinstance(orig.args[0], int):
            message = str(orig.args[1])
        else:
            message = str(orig)
        return message.strip().splitlines()[0] if message.strip() else repr(orig), code

    @classmethod
    def from_driver_error(
        cls, error: BaseException, **kwargs: Any
    ) -> "BackendExecutionError":
        """Wrap a driver/SQLAlchemy error without leaking its traceback text."""
        message, code = cls.describe_driver_error(error)
        return cls(message, backend_code=code, cause=error, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.backend_code is not None:
            payload["backendCode"] = self.backend_code
        return payload


class PartialMutationFailure(BackendExecutionError):
    """A multi-statement mutation failed after earlier statements committed.

    The schema may be in an intermediate state. No compensation is attempted;
    ``applied_statements`` tells the caller exactly what already took effect.
    """

    def __init__(
        self,
        message: str,
        *,
        applied_statements: list[str],
        failed_statement: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.applied_statements = list(applied_statements)
        self.failed_statement = failed_statement

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["partial"] = True
        payload["appliedStatements"] = self.applied_statements
        payload["failedStatement"] = self.failed_statement
        return payload


class TemplateNotFound(IdentifierValidationError):
    """Unknown table template key."""
