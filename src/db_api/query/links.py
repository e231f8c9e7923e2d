"""Join-link resolution.

A link asks the engine to join a related table into a read.  How two tables
relate is decided by a ``LinkResolver``; the builder only accepts the
columns it returns after checking them against the metadata model.

Two resolvers are provided:

- ``ForeignKeyLinkResolver`` (default): uses introspected foreign keys in
  either direction.
- ``NamingConventionLinkResolver``: ``<link>_id`` on the base table, or
  ``<base>_id`` on the linked table, pointing at the other table's primary
  key.
"""

from typing import Protocol

from pydantic import BaseModel, ConfigDict

from db_api.errors import QueryValidationError
from db_api.schema.models import TableMetadata


class JoinCondition(BaseModel):
    """Equality join ``base.base_column = link.link_column``."""

    model_config = ConfigDict(frozen=True)

    base_column: str
    link_column: str


class LinkResolver(Protocol):
    """Decides how a base table joins a linked table."""

    def resolve(self, base: TableMetadata, link: TableMetadata) -> JoinCondition:
        """Return the join condition.

        Raises:
            QueryValidationError: If the tables are unrelated or the relation
                is ambiguous.
        """
        ...


class ForeignKeyLinkResolver:
    """Resolve links through single-column foreign keys."""

    def resolve(self, base: TableMetadata, link: TableMetadata) -> JoinCondition:
        candidates: list[JoinCondition] = []
        for fk in base.foreign_keys:
            if fk.references_table == link.table_name:
                candidates.append(
                    JoinCondition(
                        base_column=fk.column_name, link_column=fk.references_column
                    )
                )
        for fk in link.foreign_keys:
            if fk.references_table == base.table_name:
                candidates.append(
                    JoinCondition(
                        base_column=fk.references_column, link_column=fk.column_name
                    )
                )

        if not candidates:
            raise QueryValidationError(
                f"table '{base.table_name}' has no foreign key relation "
                f"with '{link.table_name}'"
            )
        if len(candidates) > 1:
            raise QueryValidationError(
                f"relation between '{base.table_name}' and '{link.table_name}' "
                f"is ambiguous ({len(candidates)} foreign keys)"
            )
        return candidates[0]


class NamingConventionLinkResolver:
    """Resolve links through ``<table>_id`` column names."""

    def __init__(self, suffix: str = "_id") -> None:
        self._suffix = suffix

    def resolve(self, base: TableMetadata, link: TableMetadata) -> JoinCondition:
        forward = f"{link.table_name}{self._suffix}"
        backward = f"{base.table_name}{self._suffix}"

        if base.has_field(forward):
            # raises MissingPrimaryKeyError when link has no single PK
            pk = link.get_primary_column()
            return JoinCondition(base_column=forward, link_column=pk.column_name)
        if link.has_field(backward):
            pk = base.get_primary_column()
            return JoinCondition(base_column=pk.column_name, link_column=backward)

        raise QueryValidationError(
            f"table '{base.table_name}' has no '{forward}' field and "
            f"'{link.table_name}' has no '{backward}' field"
        )
