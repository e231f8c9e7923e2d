"""Bind-value conversion driven by introspected column types.

asyncpg binds strictly typed parameters: comparing an ``int`` column with
the string ``"42"`` fails inside the driver.  Values arriving from an API
layer are usually strings, so ``convert_bind_value`` converts them using
the column's introspected type before the statement is built.  Values that
already have a native type pass through.

Usage:
    from db_api.query.values import convert_bind_value

    convert_bind_value("users", users.get_column("id"), "42")  # -> 42
"""

import json
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from db_api.errors import InvalidValueError
from db_api.schema.models import ColumnMetadata

INTEGER_TYPES = frozenset({"smallint", "int", "integer", "bigint", "int2", "int4", "int8"})
NUMERIC_TYPES = frozenset({"numeric", "decimal"})
FLOAT_TYPES = frozenset({"real", "double precision", "float4", "float8"})
BOOLEAN_TYPES = frozenset({"bool", "boolean"})
DATE_TYPES = frozenset({"date"})
DATETIME_TYPES = frozenset({"timestamp", "timestamptz"})
TIME_TYPES = frozenset({"time", "timetz"})
UUID_TYPES = frozenset({"uuid"})
JSON_TYPES = frozenset({"json", "jsonb"})

_TRUE_STRINGS = frozenset({"true", "t", "yes", "y", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "f", "no", "n", "off", "0"})


def _parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise ValueError(raw)


def _parse_int(raw: str) -> int:
    return int(raw.strip())


_STRING_PARSERS = {
    **{t: _parse_int for t in INTEGER_TYPES},
    **{t: (lambda raw: Decimal(raw.strip())) for t in NUMERIC_TYPES},
    **{t: (lambda raw: float(raw.strip())) for t in FLOAT_TYPES},
    **{t: _parse_bool for t in BOOLEAN_TYPES},
    **{t: (lambda raw: date.fromisoformat(raw.strip())) for t in DATE_TYPES},
    **{t: (lambda raw: datetime.fromisoformat(raw.strip())) for t in DATETIME_TYPES},
    **{t: (lambda raw: time.fromisoformat(raw.strip())) for t in TIME_TYPES},
    **{t: (lambda raw: UUID(raw.strip())) for t in UUID_TYPES},
}


def convert_bind_value(table: str, column: ColumnMetadata, value: Any) -> Any:
    """Convert *value* for binding against *column*.

    - ``None`` always passes through.
    - Strings are parsed for integer, numeric, float, boolean, date/time and
      uuid columns.
    - Dicts and lists are JSON-encoded for json/jsonb columns.
    - Everything else passes through unchanged.

    Raises:
        InvalidValueError: If a string cannot be parsed as the column type.
    """
    if value is None:
        return None

    base_type = column.base_type

    if base_type in JSON_TYPES:
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return value

    if not isinstance(value, str):
        return value

    parser = _STRING_PARSERS.get(base_type)
    if parser is None:
        return value
    try:
        return parser(value)
    except (ValueError, InvalidOperation):
        raise InvalidValueError(
            table, column.column_name, value, column.column_type
        ) from None
