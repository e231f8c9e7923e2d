"""Exception types raised by the query engine.

Errors fall into four groups:

- Startup: ``DatabaseConnectionError``, ``IntrospectionError``.  Raised by
  ``DatabaseApi.connect()``; the caller decides whether to abort or retry.
- Validation: ``QueryValidationError`` and its subclasses.  Raised before any
  SQL is sent to the database.
- Unsupported operation: ``UnsupportedOperationError``.  Also raised before
  any SQL is sent.
- Execution: not defined here.  Driver errors surface as SQLAlchemy's own
  exceptions (``sqlalchemy.exc.DBAPIError`` and friends), unchanged.

Usage:
    from db_api.errors import QueryValidationError, UnsupportedOperationError

    try:
        await api.update("users", None, {"name": "Ann"})
    except UnsupportedOperationError as e:
        return 400, str(e)
"""


class DbApiError(Exception):
    """Base class for all errors raised by db-api."""

    pass


class DatabaseConnectionError(DbApiError):
    """Raised when the database cannot be reached at startup."""

    pass


class IntrospectionError(DbApiError):
    """Raised when the schema catalog cannot be read."""

    pass


class ProfileNotFoundError(DbApiError):
    """Raised when no database profile or URL is configured."""

    pass


class UnsupportedOperationError(DbApiError):
    """Raised for operations the engine refuses to run.

    Examples: updating without a primary-key value, deleting without any
    selector.
    """

    pass


class QueryValidationError(DbApiError, ValueError):
    """Raised when a request references something the schema does not have."""

    pass


class UnknownTableError(QueryValidationError):
    """Raised when a table name is not part of the introspected schema."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"table '{table}' does not exist")


class UnknownFieldError(QueryValidationError):
    """Raised when a field name is not a column of the given table."""

    def __init__(self, table: str, field: str) -> None:
        self.table = table
        self.field = field
        super().__init__(f"table '{table}' does not have field '{field}'")


class UnknownOperatorError(QueryValidationError):
    """Raised when a filter uses an operator outside the supported set."""

    def __init__(self, operator: str) -> None:
        self.operator = operator
        super().__init__(f"unknown filter operator '{operator}'")


class MissingPrimaryKeyError(QueryValidationError):
    """Raised for by-id operations on a table without a single primary key."""

    def __init__(self, table: str, reason: str = "has no primary key") -> None:
        self.table = table
        super().__init__(f"table '{table}' {reason}")


class InvalidValueError(QueryValidationError):
    """Raised when a value cannot be bound to a column of the given type."""

    def __init__(self, table: str, field: str, value: object, column_type: str) -> None:
        self.table = table
        self.field = field
        self.value = value
        super().__init__(
            f"invalid value {value!r} for field '{field}' of table '{table}' "
            f"(type {column_type})"
        )
