"""Schema introspection and the read-only metadata model.

Provides live database introspection (``SchemaIntrospector``,
``introspect_database``) and the frozen models it produces
(``DatabaseMetadata``, ``TableMetadata``, ``ColumnMetadata``,
``ForeignKeyMetadata``).

Usage:
    from db_api.schema import SchemaIntrospector, DatabaseMetadata
"""

from db_api.schema.introspector import SchemaIntrospector, introspect_database
from db_api.schema.models import (
    AUTO_INCREMENT,
    MULTIPLE_KEY,
    PRIMARY_KEY,
    UNIQUE_KEY,
    ColumnMetadata,
    DatabaseMetadata,
    ForeignKeyMetadata,
    TableMetadata,
)

__all__ = [
    "SchemaIntrospector",
    "introspect_database",
    "DatabaseMetadata",
    "TableMetadata",
    "ColumnMetadata",
    "ForeignKeyMetadata",
    "PRIMARY_KEY",
    "UNIQUE_KEY",
    "MULTIPLE_KEY",
    "AUTO_INCREMENT",
]
