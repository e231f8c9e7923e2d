"""Statement execution and result coercion.

``Executor`` runs built statements through the shared pool.  Reads return
a list of row dicts whose values are coerced to a small JSON-safe set of
types; writes return a ``WriteResult``.

Coercion policy (``coerce_value``):

- ``int`` stays ``int``
- ``bytes``, ``bytearray`` and ``memoryview`` become ``str``
- ``Decimal`` becomes ``str(value)``; precision is kept as text, never as
  ``float``
- ``date``, ``datetime`` and ``time`` become ISO 8601 strings
- ``UUID`` becomes ``str``
- everything else (``None``, ``bool``, ``float``, ``str``, json) is unchanged

Driver errors are not caught here; they reach the caller unchanged.
"""

import logging
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.sql.expression import Executable

from db_api.connection import ConnectionManager
from db_api.query.builder import render_sql

logger = logging.getLogger(__name__)


class WriteResult(BaseModel):
    """Outcome of an insert, update or delete.

    Example:
        >>> WriteResult(rows_affected=1, last_insert_id=7).last_insert_id
        7
    """

    rows_affected: int
    last_insert_id: Any | None = None


def coerce_value(value: Any) -> Any:
    """Normalize one column value (see module docstring)."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def coerce_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce all values in a row mapping."""
    return {str(k): coerce_value(v) for k, v in row.items()}


class Executor:
    """Runs statements against the ``ConnectionManager``'s pool.

    Reads use ``engine.connect()``; writes use ``engine.begin()`` for
    automatic commit on success and rollback on error.

    Args:
        connections: The shared connection manager.
    """

    def __init__(self, connections: ConnectionManager) -> None:
        self._connections = connections

    async def query(self, statement: Executable) -> list[dict[str, Any]]:
        """Run a read statement and return coerced rows.

        Row order is whatever the database returns.
        """
        logger.debug("query sql: '%s'", render_sql(statement))
        engine = self._connections.get_engine()
        async with engine.connect() as conn:
            result = await conn.execute(statement)
            return [coerce_row(row) for row in result.mappings()]

    async def execute(self, statement: Executable) -> WriteResult:
        """Run a write statement.

        When the statement returns rows (insert with ``RETURNING``), the
        affected count is the number of returned rows and ``last_insert_id``
        is the first column of the last one.  Otherwise the driver's
        ``rowcount`` is used.
        """
        logger.debug("exec sql: '%s'", render_sql(statement))
        engine = self._connections.get_engine()
        async with engine.begin() as conn:
            result = await conn.execute(statement)
            if result.returns_rows:
                rows = result.fetchall()
                last_id = coerce_value(rows[-1][0]) if rows else None
                return WriteResult(rows_affected=len(rows), last_insert_id=last_id)
            return WriteResult(rows_affected=result.rowcount)
