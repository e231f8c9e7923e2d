"""Dynamic query construction.

Provides the statement builder (``QueryBuilder``), per-call read options
(``QueryOption``), filter predicates (``Predicate``, ``Operator``) and the
pluggable join-link resolvers.

Usage:
    from db_api.query import QueryBuilder, QueryOption, Operator, Predicate
"""

from db_api.query.builder import QueryBuilder, render_sql
from db_api.query.links import (
    ForeignKeyLinkResolver,
    JoinCondition,
    LinkResolver,
    NamingConventionLinkResolver,
)
from db_api.query.options import Operator, Predicate, QueryOption, parse_predicates
from db_api.query.values import convert_bind_value

__all__ = [
    "QueryBuilder",
    "render_sql",
    "QueryOption",
    "Operator",
    "Predicate",
    "parse_predicates",
    "convert_bind_value",
    "LinkResolver",
    "JoinCondition",
    "ForeignKeyLinkResolver",
    "NamingConventionLinkResolver",
]
