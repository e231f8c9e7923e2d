"""Dynamic, metadata-validated CRUD statement builder.

``QueryBuilder`` turns a table name plus runtime options into a SQLAlchemy
Core statement.  Table and column identifiers are only ever taken from the
``DatabaseMetadata`` model; every runtime-supplied name is checked against
it first, and every value is a bound parameter.

Usage:
    from db_api.query.builder import QueryBuilder, render_sql
    from db_api.query.options import QueryOption

    builder = QueryBuilder(metadata)
    stmt = builder.get_by_table("users", QueryOption(limit=10, fields=["id"]))
    print(render_sql(stmt))
"""

from collections.abc import Iterable, Mapping
from typing import Any, NamedTuple

from sqlalchemy import (
    Delete,
    Insert,
    Select,
    Update,
    and_,
    column,
    delete,
    insert,
    select,
    table,
    update,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql.expression import ColumnElement, Executable, TableClause

from db_api.errors import (
    QueryValidationError,
    UnknownFieldError,
    UnsupportedOperationError,
)
from db_api.query.links import ForeignKeyLinkResolver, JoinCondition, LinkResolver
from db_api.query.options import (
    LIST_OPERATORS,
    Operator,
    Predicate,
    QueryOption,
    parse_predicates,
)
from db_api.query.values import convert_bind_value
from db_api.schema.models import ColumnMetadata, DatabaseMetadata, TableMetadata


def render_sql(statement: Executable) -> str:
    """Compile *statement* to PostgreSQL SQL text (placeholders, no values)."""
    return str(statement.compile(dialect=postgresql.dialect()))


class _Linked(NamedTuple):
    meta: TableMetadata
    clause: TableClause
    condition: JoinCondition


class _Field(NamedTuple):
    meta: TableMetadata
    clause: TableClause
    column: ColumnMetadata
    label: str


class QueryBuilder:
    """Builds select/insert/update/delete statements for any introspected table.

    Args:
        metadata: The introspected schema.  Never mutated.
        link_resolver: Decides join conditions for ``links``.  Defaults to
            ``ForeignKeyLinkResolver``.

    Example:
        builder = QueryBuilder(metadata)
        stmt = builder.get_by_table_and_id("users", 7)
        stmt = builder.insert_by_table("users", {"name": "Ann"})
    """

    def __init__(
        self,
        metadata: DatabaseMetadata,
        link_resolver: LinkResolver | None = None,
    ) -> None:
        self._metadata = metadata
        self._link_resolver: LinkResolver = link_resolver or ForeignKeyLinkResolver()

    @property
    def metadata(self) -> DatabaseMetadata:
        return self._metadata

    # ------------------------------------------------------------------
    # Select
    # ------------------------------------------------------------------

    def get_by_table(self, table_name: str, option: QueryOption | None = None) -> Select:
        """Select rows matching ``option.wheres`` (all rows when empty)."""
        base = self._metadata.require_table(table_name)
        return self._select(base, option or QueryOption())

    def get_by_table_and_id(
        self,
        table_name: str,
        id: Any,
        option: QueryOption | None = None,
    ) -> Select:
        """Select the row whose primary key equals *id*.

        Raises:
            MissingPrimaryKeyError: If the table has no single primary key.
        """
        base = self._metadata.require_table(table_name)
        pk = base.get_primary_column()
        return self._select(base, option or QueryOption(), id_filter=(pk, id))

    def _select(
        self,
        base: TableMetadata,
        option: QueryOption,
        id_filter: tuple[ColumnMetadata, Any] | None = None,
    ) -> Select:
        base_clause = self._clause(base)
        linked = self._resolve_links(base, option.links)

        projection = [
            f.clause.c[f.column.column_name].label(f.label)
            for f in self._projection(base, base_clause, linked, option.fields)
        ]

        from_clause = base_clause
        for link in linked.values():
            from_clause = from_clause.join(
                link.clause,
                base_clause.c[link.condition.base_column]
                == link.clause.c[link.condition.link_column],
            )

        stmt = select(*projection).select_from(from_clause)

        conditions: list[ColumnElement] = []
        if id_filter is not None:
            pk, id_value = id_filter
            conditions.append(
                base_clause.c[pk.column_name]
                == convert_bind_value(base.table_name, pk, id_value)
            )
        conditions.extend(self._conditions(base, base_clause, linked, option.wheres))
        if conditions:
            stmt = stmt.where(and_(*conditions))

        if option.limit:
            stmt = stmt.limit(option.limit)
        if option.offset:
            stmt = stmt.offset(option.offset)
        return stmt

    def _projection(
        self,
        base: TableMetadata,
        base_clause: TableClause,
        linked: dict[str, _Linked],
        fields: Iterable[str],
    ) -> list[_Field]:
        requested = list(dict.fromkeys(fields))
        if requested:
            return [self._resolve_field(base, base_clause, linked, f) for f in requested]

        result = [
            _Field(base, base_clause, c, c.column_name) for c in base.columns
        ]
        for name, link in linked.items():
            result.extend(
                _Field(link.meta, link.clause, c, f"{name}.{c.column_name}")
                for c in link.meta.columns
            )
        return result

    def _resolve_links(
        self, base: TableMetadata, links: Iterable[str]
    ) -> dict[str, _Linked]:
        linked: dict[str, _Linked] = {}
        for name in links:
            if name == base.table_name:
                raise QueryValidationError(f"table '{name}' cannot be linked to itself")
            if name in linked:
                raise QueryValidationError(f"link '{name}' given more than once")
            meta = self._metadata.require_table(name)
            condition = self._link_resolver.resolve(base, meta)
            if not base.has_field(condition.base_column):
                raise UnknownFieldError(base.table_name, condition.base_column)
            if not meta.has_field(condition.link_column):
                raise UnknownFieldError(meta.table_name, condition.link_column)
            linked[name] = _Linked(meta, self._clause(meta), condition)
        return linked

    def _resolve_field(
        self,
        base: TableMetadata,
        base_clause: TableClause,
        linked: dict[str, _Linked],
        field: str,
    ) -> _Field:
        """Resolve ``column`` on the base table or ``link.column`` on a link."""
        col = base.get_column(field)
        if col is not None:
            return _Field(base, base_clause, col, col.column_name)

        prefix, dot, name = field.partition(".")
        if dot and prefix in linked:
            link = linked[prefix]
            col = link.meta.get_column(name)
            if col is None:
                raise UnknownFieldError(link.meta.table_name, name)
            return _Field(link.meta, link.clause, col, f"{prefix}.{col.column_name}")

        raise UnknownFieldError(base.table_name, field)

    # ------------------------------------------------------------------
    # Insert / Update / Delete
    # ------------------------------------------------------------------

    def insert_by_table(self, table_name: str, values: Mapping[str, Any]) -> Insert:
        """Insert one row.

        Returns the primary key (``RETURNING``) when the table has a single
        primary-key column.
        """
        meta = self._metadata.require_table(table_name)
        if not values:
            raise QueryValidationError(f"no values given for insert into '{table_name}'")

        clause = self._clause(meta)
        stmt = insert(clause).values(self._bind_values(meta, values))

        pks = meta.primary_key_columns()
        if len(pks) == 1:
            stmt = stmt.returning(clause.c[pks[0].column_name])
        return stmt

    def update_by_table_and_id(
        self, table_name: str, id: Any, values: Mapping[str, Any]
    ) -> Update:
        """Update the row whose primary key equals *id*."""
        meta = self._metadata.require_table(table_name)
        pk = meta.get_primary_column()
        if not values:
            raise QueryValidationError(f"no values given for update of '{table_name}'")

        clause = self._clause(meta)
        return (
            update(clause)
            .where(clause.c[pk.column_name] == convert_bind_value(table_name, pk, id))
            .values(self._bind_values(meta, values))
        )

    def delete_by_table_and_id(self, table_name: str, id: Any) -> Delete:
        """Delete the row whose primary key equals *id*."""
        meta = self._metadata.require_table(table_name)
        pk = meta.get_primary_column()
        clause = self._clause(meta)
        return delete(clause).where(
            clause.c[pk.column_name] == convert_bind_value(table_name, pk, id)
        )

    def delete_by_table(self, table_name: str, wheres: Mapping[str, Any]) -> Delete:
        """Delete rows matching *wheres*.

        Raises:
            UnsupportedOperationError: If *wheres* is empty.  Deleting a whole
                table is not allowed.
        """
        meta = self._metadata.require_table(table_name)
        if not wheres:
            raise UnsupportedOperationError(
                f"delete from '{table_name}' needs an id or at least one filter"
            )
        clause = self._clause(meta)
        conditions = self._conditions(meta, clause, {}, wheres)
        return delete(clause).where(and_(*conditions))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clause(self, meta: TableMetadata) -> TableClause:
        return table(
            meta.table_name,
            *(column(c.column_name) for c in meta.columns),
            schema=self._metadata.schema_name,
        )

    def _bind_values(
        self, meta: TableMetadata, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        bound: dict[str, Any] = {}
        for field, value in values.items():
            col = meta.get_column(field)
            if col is None:
                raise UnknownFieldError(meta.table_name, field)
            bound[col.column_name] = convert_bind_value(meta.table_name, col, value)
        return bound

    def _conditions(
        self,
        base: TableMetadata,
        base_clause: TableClause,
        linked: dict[str, _Linked],
        wheres: Mapping[str, Any],
    ) -> list[ColumnElement]:
        conditions: list[ColumnElement] = []
        for field, condition in wheres.items():
            target = self._resolve_field(base, base_clause, linked, field)
            expr = target.clause.c[target.column.column_name]
            for predicate in parse_predicates(condition):
                conditions.append(
                    self._compare(expr, predicate, target.meta.table_name, target.column)
                )
        return conditions

    @staticmethod
    def _compare(
        expr: ColumnElement,
        predicate: Predicate,
        table_name: str,
        col: ColumnMetadata,
    ) -> ColumnElement:
        op = predicate.operator

        if op in LIST_OPERATORS:
            items = [convert_bind_value(table_name, col, v) for v in predicate.value]
            return expr.in_(items) if op is Operator.IN else expr.not_in(items)
        if op is Operator.IS:
            return expr.is_(predicate.value)
        if op is Operator.IS_NOT:
            return expr.is_not(predicate.value)
        if op is Operator.LIKE:
            return expr.like(predicate.value)
        if op is Operator.NOT_LIKE:
            return expr.not_like(predicate.value)

        value = convert_bind_value(table_name, col, predicate.value)
        if op is Operator.EQ:
            return expr == value
        if op is Operator.NEQ:
            return expr != value
        if op is Operator.GT:
            return expr > value
        if op is Operator.GTE:
            return expr >= value
        if op is Operator.LT:
            return expr < value
        return expr <= value  # Operator.LTE
