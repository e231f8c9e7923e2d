"""Tests for the schema metadata model."""

import pytest
from pydantic import ValidationError

from db_api.errors import MissingPrimaryKeyError, UnknownTableError
from db_api.schema.models import ColumnMetadata, DatabaseMetadata, TableMetadata


# ============================================================
# Test: ColumnMetadata
# ============================================================


class TestColumnMetadata:
    """Verify column attributes and derived properties."""

    def test_defaults_are_undetermined(self) -> None:
        """nullable, key and extra default to empty strings, not NO."""
        col = ColumnMetadata(column_name="x", column_type="text")
        assert col.nullable == ""
        assert col.key == ""
        assert col.extra == ""
        assert col.default_value is None

    def test_is_primary_key(self) -> None:
        assert ColumnMetadata(column_name="id", column_type="int", key="PRI").is_primary_key
        assert not ColumnMetadata(column_name="id", column_type="int", key="UNI").is_primary_key

    def test_is_auto_increment(self) -> None:
        col = ColumnMetadata(column_name="id", column_type="int", extra="auto_increment")
        assert col.is_auto_increment

    def test_base_type_strips_suffix(self) -> None:
        """base_type drops length and precision."""
        assert ColumnMetadata(column_name="a", column_type="varchar(255)").base_type == "varchar"
        assert ColumnMetadata(column_name="b", column_type="numeric(10,2)").base_type == "numeric"
        assert ColumnMetadata(column_name="c", column_type="INT").base_type == "int"

    def test_frozen(self) -> None:
        """Columns cannot be mutated after construction."""
        col = ColumnMetadata(column_name="x", column_type="text")
        with pytest.raises(ValidationError):
            col.column_name = "y"


# ============================================================
# Test: TableMetadata
# ============================================================


class TestTableMetadata:
    """Verify field lookup and primary key resolution."""

    def test_has_field_exact_match(self, users_table) -> None:
        """has_field is exact and case-sensitive."""
        assert users_table.has_field("email")
        assert not users_table.has_field("Email")
        assert not users_table.has_field("missing")

    def test_column_names_in_declared_order(self, users_table) -> None:
        assert users_table.column_names() == ["id", "name", "email"]

    def test_get_column(self, users_table) -> None:
        assert users_table.get_column("name").column_type == "varchar(100)"
        assert users_table.get_column("nope") is None

    def test_get_primary_column(self, users_table) -> None:
        assert users_table.get_primary_column().column_name == "id"

    def test_no_primary_key_raises(self, logs_table) -> None:
        """A table without a primary key never silently picks a column."""
        with pytest.raises(MissingPrimaryKeyError, match="has no primary key"):
            logs_table.get_primary_column()

    def test_composite_primary_key_raises(self) -> None:
        table = TableMetadata(
            table_name="memberships",
            columns=(
                ColumnMetadata(column_name="user_id", column_type="int", key="PRI"),
                ColumnMetadata(column_name="group_id", column_type="int", key="PRI"),
            ),
        )
        assert len(table.primary_key_columns()) == 2
        with pytest.raises(MissingPrimaryKeyError, match="composite primary key"):
            table.get_primary_column()


# ============================================================
# Test: DatabaseMetadata
# ============================================================


class TestDatabaseMetadata:
    """Verify table lookup helpers and uniqueness."""

    def test_table_names_in_order(self, metadata) -> None:
        assert metadata.table_names() == ["users", "posts", "logs"]

    def test_has_table(self, metadata) -> None:
        assert metadata.has_table("users")
        assert not metadata.has_table("Users")

    def test_get_table_missing_returns_none(self, metadata) -> None:
        assert metadata.get_table("orders") is None

    def test_require_table_raises(self, metadata) -> None:
        with pytest.raises(UnknownTableError, match="table 'orders' does not exist"):
            metadata.require_table("orders")

    def test_table_have_field(self, metadata) -> None:
        """table_have_field is false for unknown tables and unknown fields."""
        assert metadata.table_have_field("posts", "title")
        assert not metadata.table_have_field("posts", "body")
        assert not metadata.table_have_field("orders", "id")

    def test_duplicate_table_names_rejected(self) -> None:
        with pytest.raises(ValidationError, match="duplicate table name"):
            DatabaseMetadata(
                database_name="db",
                tables=(TableMetadata(table_name="a"), TableMetadata(table_name="a")),
            )

    def test_default_schema_is_public(self) -> None:
        assert DatabaseMetadata(database_name="db").schema_name == "public"

    def test_empty_database(self) -> None:
        """A database with zero tables is valid; every lookup fails."""
        meta = DatabaseMetadata(database_name="empty")
        assert meta.table_names() == []
        with pytest.raises(UnknownTableError):
            meta.require_table("users")
