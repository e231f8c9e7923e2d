"""Shared fixtures: a small shop schema and env isolation."""

import pytest

from db_api.config.settings import get_settings
from db_api.schema.models import (
    ColumnMetadata,
    DatabaseMetadata,
    ForeignKeyMetadata,
    TableMetadata,
)


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Clear DB_API_* env vars and the cached Settings around every test."""
    for var in ("DB_API_DATABASE_URL", "DB_API_PROFILE", "DB_API_CONFIG_FILE", "DB_API_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def users_table() -> TableMetadata:
    return TableMetadata(
        table_name="users",
        columns=(
            ColumnMetadata(
                column_name="id",
                column_type="int",
                nullable="NO",
                key="PRI",
                default_value="nextval('users_id_seq'::regclass)",
                extra="auto_increment",
            ),
            ColumnMetadata(column_name="name", column_type="varchar(100)", nullable="NO"),
            ColumnMetadata(
                column_name="email", column_type="varchar(255)", nullable="YES", key="UNI"
            ),
        ),
    )


@pytest.fixture
def posts_table() -> TableMetadata:
    return TableMetadata(
        table_name="posts",
        columns=(
            ColumnMetadata(
                column_name="id", column_type="int", nullable="NO", key="PRI",
                extra="auto_increment",
            ),
            ColumnMetadata(column_name="user_id", column_type="int", nullable="NO", key="MUL"),
            ColumnMetadata(column_name="title", column_type="text", nullable="NO"),
            ColumnMetadata(column_name="price", column_type="numeric(10,2)", nullable="YES"),
            ColumnMetadata(column_name="published_at", column_type="timestamptz"),
        ),
        foreign_keys=(
            ForeignKeyMetadata(
                column_name="user_id", references_table="users", references_column="id"
            ),
        ),
    )


@pytest.fixture
def logs_table() -> TableMetadata:
    """A table without a primary key."""
    return TableMetadata(
        table_name="logs",
        columns=(
            ColumnMetadata(column_name="message", column_type="text"),
            ColumnMetadata(column_name="level", column_type="varchar(10)"),
        ),
    )


@pytest.fixture
def metadata(users_table, posts_table, logs_table) -> DatabaseMetadata:
    return DatabaseMetadata(
        database_name="shop",
        schema_name="public",
        tables=(users_table, posts_table, logs_table),
    )
