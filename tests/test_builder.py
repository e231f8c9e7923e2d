"""Tests for QueryBuilder statement construction.

Statements are compiled with the PostgreSQL dialect and checked for the
identifiers they reference and the values they bind.  Identifiers must
only ever come from the metadata model; values are always bound.
"""

from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from db_api.errors import (
    InvalidValueError,
    MissingPrimaryKeyError,
    QueryValidationError,
    UnknownFieldError,
    UnknownOperatorError,
    UnknownTableError,
    UnsupportedOperationError,
)
from db_api.query.builder import QueryBuilder, render_sql
from db_api.query.links import JoinCondition
from db_api.query.options import Operator, Predicate, QueryOption


def _params(stmt) -> dict:
    return stmt.compile(dialect=postgresql.dialect()).params


@pytest.fixture
def builder(metadata) -> QueryBuilder:
    return QueryBuilder(metadata)


# ============================================================
# Test: Select by table
# ============================================================


class TestGetByTable:
    """Verify select without an id."""

    def test_all_columns(self, builder) -> None:
        sql = render_sql(builder.get_by_table("users"))
        assert "FROM public.users" in sql
        for col in ("id", "name", "email"):
            assert f"public.users.{col}" in sql
        assert "WHERE" not in sql
        assert "LIMIT" not in sql
        assert "OFFSET" not in sql

    def test_selected_fields_only(self, builder) -> None:
        stmt = builder.get_by_table("users", QueryOption(fields=["name"]))
        sql = render_sql(stmt)
        assert "public.users.name" in sql
        assert "public.users.email" not in sql

    def test_duplicate_fields_collapsed(self, builder) -> None:
        stmt = builder.get_by_table("users", QueryOption(fields=["name", "name"]))
        assert len(stmt.selected_columns) == 1

    def test_limit_and_offset(self, builder) -> None:
        stmt = builder.get_by_table("users", QueryOption(limit=10, offset=20))
        sql = render_sql(stmt)
        assert "LIMIT" in sql
        assert "OFFSET" in sql
        params = _params(stmt)
        assert 10 in params.values()
        assert 20 in params.values()

    def test_offset_without_limit(self, builder) -> None:
        sql = render_sql(builder.get_by_table("users", QueryOption(offset=5)))
        assert "OFFSET" in sql
        assert "LIMIT" not in sql

    def test_equality_filter_is_bound(self, builder) -> None:
        stmt = builder.get_by_table("users", QueryOption(wheres={"name": "Ann"}))
        sql = render_sql(stmt)
        assert "WHERE public.users.name = " in sql
        assert "Ann" not in sql
        assert "Ann" in _params(stmt).values()

    def test_operator_map_filter(self, builder) -> None:
        stmt = builder.get_by_table(
            "posts", QueryOption(wheres={"price": {"gte": "10", "lt": "20.5"}})
        )
        sql = render_sql(stmt)
        assert "public.posts.price >= " in sql
        assert "public.posts.price < " in sql
        values = list(_params(stmt).values())
        assert Decimal("10") in values
        assert Decimal("20.5") in values

    def test_in_filter_converts_items(self, builder) -> None:
        stmt = builder.get_by_table("users", QueryOption(wheres={"id": ["1", "2"]}))
        assert "IN" in render_sql(stmt)
        assert [1, 2] in _params(stmt).values()

    def test_not_in_filter(self, builder) -> None:
        stmt = builder.get_by_table("users", QueryOption(wheres={"id": {"notIn": [3]}}))
        assert "NOT IN" in render_sql(stmt)

    def test_like_and_is_null(self, builder) -> None:
        stmt = builder.get_by_table(
            "users",
            QueryOption(wheres={"name": {"like": "A%"}, "email": {"is": None}}),
        )
        sql = render_sql(stmt)
        assert "public.users.name LIKE " in sql
        assert "public.users.email IS NULL" in sql

    def test_is_not_null(self, builder) -> None:
        stmt = builder.get_by_table(
            "users", QueryOption(wheres={"email": Predicate(operator=Operator.IS_NOT, value=None)})
        )
        assert "public.users.email IS NOT NULL" in render_sql(stmt)

    def test_neq_and_not_like(self, builder) -> None:
        stmt = builder.get_by_table(
            "users", QueryOption(wheres={"name": {"neq": "Bob", "notLike": "%x"}})
        )
        sql = render_sql(stmt)
        assert "public.users.name != " in sql
        assert "NOT LIKE" in sql

    def test_unknown_table(self, builder) -> None:
        with pytest.raises(UnknownTableError):
            builder.get_by_table("orders")

    def test_unknown_field(self, builder) -> None:
        with pytest.raises(UnknownFieldError, match="does not have field 'age'"):
            builder.get_by_table("users", QueryOption(fields=["age"]))

    def test_unknown_filter_field(self, builder) -> None:
        with pytest.raises(UnknownFieldError):
            builder.get_by_table("users", QueryOption(wheres={"age": 3}))

    def test_unknown_operator(self, builder) -> None:
        with pytest.raises(UnknownOperatorError):
            builder.get_by_table("users", QueryOption(wheres={"id": {"between": [1, 2]}}))

    def test_invalid_value(self, builder) -> None:
        with pytest.raises(InvalidValueError):
            builder.get_by_table("users", QueryOption(wheres={"id": "abc"}))

    def test_hostile_identifier_rejected(self, builder) -> None:
        """Names that are not in the metadata never reach the SQL text."""
        with pytest.raises(UnknownFieldError):
            builder.get_by_table("users", QueryOption(fields=["id; DROP TABLE users"]))
        with pytest.raises(UnknownTableError):
            builder.get_by_table("users; --")

    def test_other_schema_is_qualified(self, users_table) -> None:
        from db_api.schema.models import DatabaseMetadata

        meta = DatabaseMetadata(database_name="db", schema_name="app", tables=(users_table,))
        sql = render_sql(QueryBuilder(meta).get_by_table("users"))
        assert "FROM app.users" in sql


# ============================================================
# Test: Select by id
# ============================================================


class TestGetByTableAndId:
    """Verify select by primary key."""

    def test_filters_on_primary_key(self, builder) -> None:
        stmt = builder.get_by_table_and_id("users", "7")
        assert "WHERE public.users.id = " in render_sql(stmt)
        assert 7 in _params(stmt).values()

    def test_id_combined_with_filters(self, builder) -> None:
        stmt = builder.get_by_table_and_id("users", 7, QueryOption(wheres={"name": "Ann"}))
        sql = render_sql(stmt)
        assert "public.users.id = " in sql
        assert " AND public.users.name = " in sql

    def test_no_primary_key(self, builder) -> None:
        with pytest.raises(MissingPrimaryKeyError):
            builder.get_by_table_and_id("logs", 1)


# ============================================================
# Test: Links
# ============================================================


class TestLinks:
    """Verify joins of related tables."""

    def test_join_and_prefixed_labels(self, builder) -> None:
        stmt = builder.get_by_table("posts", QueryOption(links=["users"]))
        sql = render_sql(stmt)
        assert "JOIN public.users ON public.posts.user_id = public.users.id" in sql
        assert '"users.name"' in sql
        labels = [c.name for c in stmt.selected_columns]
        assert labels[:5] == ["id", "user_id", "title", "price", "published_at"]
        assert labels[5:] == ["users.id", "users.name", "users.email"]

    def test_linked_field_and_filter(self, builder) -> None:
        stmt = builder.get_by_table(
            "posts",
            QueryOption(links=["users"], fields=["title", "users.name"], wheres={"users.email": "a@x"}),
        )
        assert [c.name for c in stmt.selected_columns] == ["title", "users.name"]
        assert "public.users.email = " in render_sql(stmt)

    def test_linked_field_without_link(self, builder) -> None:
        with pytest.raises(UnknownFieldError):
            builder.get_by_table("posts", QueryOption(fields=["users.name"]))

    def test_unknown_linked_field(self, builder) -> None:
        with pytest.raises(UnknownFieldError, match="table 'users' does not have field 'age'"):
            builder.get_by_table("posts", QueryOption(links=["users"], fields=["users.age"]))

    def test_unknown_link_table(self, builder) -> None:
        with pytest.raises(UnknownTableError):
            builder.get_by_table("posts", QueryOption(links=["tags"]))

    def test_unrelated_link(self, builder) -> None:
        with pytest.raises(QueryValidationError):
            builder.get_by_table("posts", QueryOption(links=["logs"]))

    def test_self_link_rejected(self, builder) -> None:
        with pytest.raises(QueryValidationError, match="itself"):
            builder.get_by_table("posts", QueryOption(links=["posts"]))

    def test_duplicate_link_rejected(self, builder) -> None:
        with pytest.raises(QueryValidationError, match="more than once"):
            builder.get_by_table("posts", QueryOption(links=["users", "users"]))

    def test_resolver_output_checked_against_metadata(self, metadata) -> None:
        """A resolver naming a column the schema lacks is rejected."""

        class BadResolver:
            def resolve(self, base, link):
                return JoinCondition(base_column="owner", link_column="id")

        with pytest.raises(UnknownFieldError, match="field 'owner'"):
            QueryBuilder(metadata, BadResolver()).get_by_table(
                "posts", QueryOption(links=["users"])
            )


# ============================================================
# Test: Insert / Update / Delete
# ============================================================


class TestWrites:
    """Verify insert, update and delete statements."""

    def test_insert_returns_primary_key(self, builder) -> None:
        stmt = builder.insert_by_table("users", {"name": "Ann", "email": "a@x.com"})
        sql = render_sql(stmt)
        assert sql.startswith("INSERT INTO public.users")
        assert "RETURNING" in sql
        assert sql.rstrip().endswith("users.id")
        params = _params(stmt)
        assert params["name"] == "Ann"
        assert params["email"] == "a@x.com"

    def test_insert_without_primary_key_has_no_returning(self, builder) -> None:
        sql = render_sql(builder.insert_by_table("logs", {"message": "hi"}))
        assert "RETURNING" not in sql

    def test_insert_converts_values(self, builder) -> None:
        stmt = builder.insert_by_table("posts", {"user_id": "3", "title": "t", "price": "9.50"})
        params = _params(stmt)
        assert params["user_id"] == 3
        assert params["price"] == Decimal("9.50")

    def test_insert_unknown_field(self, builder) -> None:
        with pytest.raises(UnknownFieldError):
            builder.insert_by_table("users", {"nickname": "A"})

    def test_insert_empty_values(self, builder) -> None:
        with pytest.raises(QueryValidationError, match="no values"):
            builder.insert_by_table("users", {})

    def test_update_by_id(self, builder) -> None:
        stmt = builder.update_by_table_and_id("users", "5", {"name": "Bo"})
        sql = render_sql(stmt)
        assert sql.startswith("UPDATE public.users SET name=")
        assert "WHERE public.users.id = " in sql
        params = _params(stmt)
        assert params["name"] == "Bo"
        assert 5 in params.values()

    def test_update_without_primary_key(self, builder) -> None:
        with pytest.raises(MissingPrimaryKeyError):
            builder.update_by_table_and_id("logs", 1, {"message": "x"})

    def test_update_empty_values(self, builder) -> None:
        with pytest.raises(QueryValidationError):
            builder.update_by_table_and_id("users", 1, {})

    def test_delete_by_id(self, builder) -> None:
        stmt = builder.delete_by_table_and_id("users", 9)
        sql = render_sql(stmt)
        assert sql.startswith("DELETE FROM public.users WHERE public.users.id = ")
        assert 9 in _params(stmt).values()

    def test_delete_by_filter(self, builder) -> None:
        stmt = builder.delete_by_table("logs", {"level": "debug", "message": {"like": "%tmp%"}})
        sql = render_sql(stmt)
        assert "DELETE FROM public.logs WHERE" in sql
        assert "public.logs.level = " in sql
        assert "LIKE" in sql

    def test_delete_without_filter_rejected(self, builder) -> None:
        with pytest.raises(UnsupportedOperationError):
            builder.delete_by_table("logs", {})

    def test_delete_by_id_without_primary_key(self, builder) -> None:
        with pytest.raises(MissingPrimaryKeyError):
            builder.delete_by_table_and_id("logs", 1)
