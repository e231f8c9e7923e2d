"""Pydantic models for the introspected schema.

This module contains the read-only metadata model:
- ColumnMetadata: one column, described with ``desc``-style attributes
- ForeignKeyMetadata: a single-column foreign key
- TableMetadata: one table with its ordered columns
- DatabaseMetadata: the whole introspected schema

All models are frozen.  A ``DatabaseMetadata`` is built once by the
introspector and then shared by every request without synchronization.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from db_api.errors import MissingPrimaryKeyError, UnknownTableError

# Known values of ColumnMetadata.key
PRIMARY_KEY = "PRI"
UNIQUE_KEY = "UNI"
MULTIPLE_KEY = "MUL"

# Known value of ColumnMetadata.extra
AUTO_INCREMENT = "auto_increment"


# ============================================================================
# Column / Table Models
# ============================================================================


class ColumnMetadata(BaseModel):
    """Schema for a database column.

    ``nullable`` and ``key`` are kept as the strings the catalog reported.
    An empty string means the catalog did not say, which is not the same
    as "NO".

    Example:
        >>> col = ColumnMetadata(column_name="id", column_type="int", key="PRI")
        >>> col.is_primary_key
        True
    """

    model_config = ConfigDict(frozen=True)

    column_name: str
    column_type: str
    nullable: str = ""  # YES, NO, or "" when undetermined
    key: str = ""  # PRI, UNI, MUL, or ""
    default_value: str | None = None
    extra: str = ""

    @property
    def is_primary_key(self) -> bool:
        return self.key == PRIMARY_KEY

    @property
    def is_auto_increment(self) -> bool:
        return AUTO_INCREMENT in self.extra

    @property
    def base_type(self) -> str:
        """Column type without its length or precision suffix."""
        return self.column_type.split("(", 1)[0].strip().lower()


class ForeignKeyMetadata(BaseModel):
    """A single-column foreign key declared on a table."""

    model_config = ConfigDict(frozen=True)

    column_name: str
    references_table: str
    references_column: str


class TableMetadata(BaseModel):
    """Schema for a database table."""

    model_config = ConfigDict(frozen=True)

    table_name: str
    columns: tuple[ColumnMetadata, ...] = Field(default_factory=tuple)
    foreign_keys: tuple[ForeignKeyMetadata, ...] = Field(default_factory=tuple)

    def column_names(self) -> list[str]:
        return [c.column_name for c in self.columns]

    def has_field(self, name: str) -> bool:
        """Exact, case-sensitive column name check."""
        return any(c.column_name == name for c in self.columns)

    def get_column(self, name: str) -> ColumnMetadata | None:
        for column in self.columns:
            if column.column_name == name:
                return column
        return None

    def primary_key_columns(self) -> list[ColumnMetadata]:
        return [c for c in self.columns if c.is_primary_key]

    def get_primary_column(self) -> ColumnMetadata:
        """Return the table's single primary-key column.

        Raises:
            MissingPrimaryKeyError: If the table has no primary key or a
                composite one.
        """
        pks = self.primary_key_columns()
        if not pks:
            raise MissingPrimaryKeyError(self.table_name)
        if len(pks) > 1:
            names = ", ".join(c.column_name for c in pks)
            raise MissingPrimaryKeyError(
                self.table_name, f"has a composite primary key ({names})"
            )
        return pks[0]


# ============================================================================
# Database Model
# ============================================================================


class DatabaseMetadata(BaseModel):
    """Complete introspected database.

    Example:
        >>> meta = DatabaseMetadata(
        ...     database_name="shop",
        ...     tables=(TableMetadata(table_name="users"),),
        ... )
        >>> meta.has_table("users")
        True
    """

    model_config = ConfigDict(frozen=True)

    database_name: str
    schema_name: str = "public"
    tables: tuple[TableMetadata, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _check_unique_table_names(self) -> "DatabaseMetadata":
        seen: set[str] = set()
        for table in self.tables:
            if table.table_name in seen:
                raise ValueError(f"duplicate table name '{table.table_name}'")
            seen.add(table.table_name)
        return self

    def table_names(self) -> list[str]:
        return [t.table_name for t in self.tables]

    def has_table(self, name: str) -> bool:
        return self.get_table(name) is not None

    def get_table(self, name: str) -> TableMetadata | None:
        for table in self.tables:
            if table.table_name == name:
                return table
        return None

    def require_table(self, name: str) -> TableMetadata:
        """Return the named table or raise ``UnknownTableError``."""
        table = self.get_table(name)
        if table is None:
            raise UnknownTableError(name)
        return table

    def table_have_field(self, table: str, field: str) -> bool:
        """Check that *table* exists and has a column named *field*."""
        meta = self.get_table(table)
        return meta is not None and meta.has_field(field)
