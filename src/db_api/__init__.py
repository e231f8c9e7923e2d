"""db-api: Metadata-driven CRUD query engine for PostgreSQL.

Introspects a database's tables and columns once at startup and serves
generic, validated create/read/update/delete for every table, with no
table-specific code.

Usage:
    from db_api import DatabaseApi, get_api
    from db_api import DatabaseMetadata, TableMetadata, ColumnMetadata
    from db_api import QueryOption, Operator, Predicate
    from db_api import QueryValidationError, UnsupportedOperationError
"""

__version__ = "0.1.0"

# Facade
from db_api.api import DatabaseApi

# Connection
from db_api.connection import ConnectionManager

# Config
from db_api.config.loader import load_db_config
from db_api.config.models import DatabaseConfig, DatabaseProfile, PoolSettings

# Errors
from db_api.errors import (
    DatabaseConnectionError,
    DbApiError,
    IntrospectionError,
    MissingPrimaryKeyError,
    ProfileNotFoundError,
    QueryValidationError,
    UnknownFieldError,
    UnknownTableError,
    UnsupportedOperationError,
)

# Executor
from db_api.executor import Executor, WriteResult, coerce_row, coerce_value

# Factory
from db_api.factory import get_api, resolve_url

# Query
from db_api.query import (
    ForeignKeyLinkResolver,
    NamingConventionLinkResolver,
    Operator,
    Predicate,
    QueryBuilder,
    QueryOption,
)

# Schema
from db_api.schema import (
    ColumnMetadata,
    DatabaseMetadata,
    ForeignKeyMetadata,
    SchemaIntrospector,
    TableMetadata,
)

__all__ = [
    # Facade
    "DatabaseApi",
    # Connection
    "ConnectionManager",
    # Config
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "PoolSettings",
    # Errors
    "DbApiError",
    "DatabaseConnectionError",
    "IntrospectionError",
    "ProfileNotFoundError",
    "QueryValidationError",
    "UnknownTableError",
    "UnknownFieldError",
    "MissingPrimaryKeyError",
    "UnsupportedOperationError",
    # Executor
    "Executor",
    "WriteResult",
    "coerce_value",
    "coerce_row",
    # Factory
    "get_api",
    "resolve_url",
    # Query
    "QueryBuilder",
    "QueryOption",
    "Operator",
    "Predicate",
    "ForeignKeyLinkResolver",
    "NamingConventionLinkResolver",
    # Schema
    "SchemaIntrospector",
    "DatabaseMetadata",
    "TableMetadata",
    "ColumnMetadata",
    "ForeignKeyMetadata",
]
