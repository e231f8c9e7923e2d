"""Per-call query options and filter predicates.

A filter maps a column name to a condition.  Accepted conditions:

- ``Predicate(Operator.GT, 10)``
- ``{"gte": 1, "lt": 10}``: operator map, several operators AND together
- ``[1, 2, 3]`` (list, tuple or set): shorthand for ``in``
- any other value, including ``None``: shorthand for ``eq``

Usage:
    from db_api.query.options import QueryOption

    option = QueryOption(
        limit=10,
        fields=["id", "name"],
        wheres={"age": {"gte": 18}, "status": "active"},
    )
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from db_api.errors import QueryValidationError, UnknownOperatorError


class Operator(str, Enum):
    """Supported filter operators."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    NOT_LIKE = "notLike"
    IN = "in"
    NOT_IN = "notIn"
    IS = "is"
    IS_NOT = "isNot"

    @classmethod
    def parse(cls, name: "str | Operator") -> "Operator":
        if isinstance(name, Operator):
            return name
        try:
            return cls(name)
        except ValueError:
            raise UnknownOperatorError(str(name)) from None


# Operators whose value must be a collection
LIST_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN})

# Operators whose value must be None, True or False
IS_OPERATORS = frozenset({Operator.IS, Operator.IS_NOT})


class Predicate(BaseModel):
    """One operator/value condition on a column."""

    model_config = ConfigDict(frozen=True)

    operator: Operator
    value: Any = None


def parse_predicates(condition: Any) -> list[Predicate]:
    """Turn a filter condition into a list of predicates.

    Raises:
        UnknownOperatorError: If an operator map uses an unknown name.
        QueryValidationError: If an operator's value has the wrong shape.
    """
    if isinstance(condition, Predicate):
        predicates = [condition]
    elif isinstance(condition, Mapping):
        if not condition:
            raise QueryValidationError("empty operator map in filter")
        predicates = [
            Predicate(operator=Operator.parse(name), value=value)
            for name, value in condition.items()
        ]
    elif isinstance(condition, (list, tuple, set, frozenset)):
        predicates = [Predicate(operator=Operator.IN, value=list(condition))]
    else:
        predicates = [Predicate(operator=Operator.EQ, value=condition)]

    for predicate in predicates:
        _check_shape(predicate)
    return predicates


def _check_shape(predicate: Predicate) -> None:
    op, value = predicate.operator, predicate.value
    if op in LIST_OPERATORS:
        if isinstance(value, (str, bytes)) or not isinstance(
            value, (list, tuple, set, frozenset)
        ):
            raise QueryValidationError(f"operator '{op.value}' needs a list value")
        if not value:
            raise QueryValidationError(f"operator '{op.value}' needs a non-empty list")
    elif op in IS_OPERATORS:
        if not (value is None or value is True or value is False):
            raise QueryValidationError(
                f"operator '{op.value}' accepts only null, true or false"
            )
    elif op in (Operator.LIKE, Operator.NOT_LIKE):
        if not isinstance(value, str):
            raise QueryValidationError(f"operator '{op.value}' needs a string pattern")


class QueryOption(BaseModel):
    """Options for one read.

    ``limit`` and ``offset`` of 0 mean "no clause".  Empty ``fields`` means
    every column.  ``links`` names related tables to join.
    """

    model_config = ConfigDict(frozen=True)

    limit: int = Field(default=0, ge=0)
    offset: int = Field(default=0, ge=0)
    fields: tuple[str, ...] = Field(default_factory=tuple)
    wheres: dict[str, Any] = Field(default_factory=dict)
    links: tuple[str, ...] = Field(default_factory=tuple)
