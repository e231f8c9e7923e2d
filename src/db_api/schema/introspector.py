"""PostgreSQL schema introspection via information_schema.

This module queries the live database once at startup and builds the
read-only ``DatabaseMetadata`` model:
- Current database name
- Base tables of one schema
- Columns in declared order, described ``desc``-style (type, nullability,
  key role, default, extra)
- Single-column foreign keys (used to resolve join links)

Uses psycopg (v3) async connections.

Usage:
    async with SchemaIntrospector(database_url) as introspector:
        metadata = await introspector.introspect()
"""

import logging

import psycopg
from psycopg import AsyncConnection

from db_api.errors import DatabaseConnectionError, IntrospectionError
from db_api.schema.models import (
    AUTO_INCREMENT,
    MULTIPLE_KEY,
    PRIMARY_KEY,
    UNIQUE_KEY,
    ColumnMetadata,
    DatabaseMetadata,
    ForeignKeyMetadata,
    TableMetadata,
)

logger = logging.getLogger(__name__)

# Rank returned by the describe query -> desc-style key marker
_KEY_MARKERS = {1: PRIMARY_KEY, 2: UNIQUE_KEY, 3: MULTIPLE_KEY}


class SchemaIntrospector:
    """Introspects a PostgreSQL schema into a ``DatabaseMetadata``.

    Runs one query for the database name, one for the table list, one for
    the schema's foreign keys, then one describe query per table.  Any
    failure raises ``IntrospectionError``; no partial model is returned.

    Args:
        database_url: PostgreSQL connection URL (``postgresql://``).
        schema_name: Schema to introspect (default: ``public``).
        excluded_tables: Table names to skip.  Defaults to
            ``EXCLUDED_TABLES_DEFAULT`` when None.
        connect_timeout: Connection timeout in seconds.

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            metadata = await introspector.introspect()
    """

    EXCLUDED_TABLES_DEFAULT = {
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    def __init__(
        self,
        database_url: str,
        schema_name: str = "public",
        excluded_tables: set[str] | None = None,
        connect_timeout: int = 10,
    ) -> None:
        self._database_url = database_url
        self._schema_name = schema_name
        self._excluded_tables: set[str] = (
            set(self.EXCLUDED_TABLES_DEFAULT)
            if excluded_tables is None
            else set(excluded_tables)
        )
        self._connect_timeout = connect_timeout
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        """Open the catalog connection."""
        try:
            self._conn = await psycopg.AsyncConnection.connect(
                self._database_url,
                connect_timeout=self._connect_timeout,
            )
        except psycopg.Error as e:
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the catalog connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn

    async def test_connection(self) -> bool:
        """Run ``SELECT 1`` on the catalog connection.

        Raises:
            RuntimeError: If not connected.
            ConnectionError: If the query fails.
        """
        conn = self._require_conn()
        try:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                row = await cur.fetchone()
                return row is not None and row[0] == 1
        except psycopg.Error as e:
            raise ConnectionError(f"Connection test failed: {e}") from e

    async def introspect(self) -> DatabaseMetadata:
        """Introspect the schema.

        Returns:
            DatabaseMetadata with one TableMetadata per base table.

        Raises:
            RuntimeError: If not connected.
            IntrospectionError: If any catalog query fails.
        """
        self._require_conn()

        try:
            database_name = await self._get_database_name()
            table_names = await self._get_tables()
            foreign_keys = await self._get_foreign_keys()

            tables: list[TableMetadata] = []
            for table_name in table_names:
                if table_name in self._excluded_tables:
                    continue
                columns = await self._get_columns(table_name)
                tables.append(
                    TableMetadata(
                        table_name=table_name,
                        columns=tuple(columns),
                        foreign_keys=tuple(foreign_keys.get(table_name, [])),
                    )
                )
        except psycopg.Error as e:
            raise IntrospectionError(f"Schema introspection failed: {e}") from e

        logger.info(
            "introspected database '%s' (schema %s): %d tables",
            database_name,
            self._schema_name,
            len(tables),
        )
        return DatabaseMetadata(
            database_name=database_name,
            schema_name=self._schema_name,
            tables=tuple(tables),
        )

    async def _get_database_name(self) -> str:
        async with self._conn.cursor() as cur:
            await cur.execute("SELECT current_database()")
            row = await cur.fetchone()
            return row[0] if row else ""

    async def _get_tables(self) -> list[str]:
        """Get all base table names in schema."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        async with self._conn.cursor() as cur:
            await cur.execute(query, (self._schema_name,))
            return [row[0] for row in await cur.fetchall()]

    async def _get_foreign_keys(self) -> dict[str, list[ForeignKeyMetadata]]:
        """Get single-column foreign keys for every table in schema.

        Joins ``pg_constraint`` by table oid, never by constraint name.
        """
        query = """
            SELECT
                src.relname AS table_name,
                src_att.attname AS column_name,
                ref.relname AS references_table,
                ref_att.attname AS references_column,
                con.conname AS constraint_name
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class src ON src.oid = con.conrelid
            JOIN pg_catalog.pg_namespace ns ON ns.oid = src.relnamespace
            JOIN pg_catalog.pg_class ref ON ref.oid = con.confrelid
            JOIN pg_catalog.pg_attribute src_att
                ON src_att.attrelid = con.conrelid
                AND src_att.attnum = con.conkey[1]
            JOIN pg_catalog.pg_attribute ref_att
                ON ref_att.attrelid = con.confrelid
                AND ref_att.attnum = con.confkey[1]
            WHERE ns.nspname = %s
              AND con.contype = 'f'
              AND cardinality(con.conkey) = 1
            ORDER BY src.relname, con.conname
        """
        async with self._conn.cursor() as cur:
            await cur.execute(query, (self._schema_name,))
            rows = await cur.fetchall()

        result: dict[str, list[ForeignKeyMetadata]] = {}
        for table_name, col_name, ref_table, ref_col, _ in rows:
            result.setdefault(table_name, []).append(
                ForeignKeyMetadata(
                    column_name=col_name,
                    references_table=ref_table,
                    references_column=ref_col,
                )
            )
        return result

    async def _get_columns(self, table_name: str) -> list[ColumnMetadata]:
        """Describe a table's columns in declared order."""
        query = """
            SELECT
                c.column_name,
                c.data_type,
                c.character_maximum_length,
                c.numeric_precision,
                c.numeric_scale,
                c.is_nullable,
                k.key_rank,
                c.column_default,
                c.is_identity
            FROM information_schema.columns c
            LEFT JOIN (
                SELECT
                    kcu.column_name,
                    MIN(
                        CASE tc.constraint_type
                            WHEN 'PRIMARY KEY' THEN 1
                            WHEN 'UNIQUE' THEN 2
                            ELSE 3
                        END
                    ) AS key_rank
                FROM information_schema.table_constraints tc
                JOIN information_schema.key_column_usage kcu
                    ON tc.constraint_name = kcu.constraint_name
                    AND tc.table_schema = kcu.table_schema
                    AND tc.table_name = kcu.table_name
                WHERE tc.table_schema = %s
                  AND tc.table_name = %s
                  AND tc.constraint_type IN ('PRIMARY KEY', 'UNIQUE', 'FOREIGN KEY')
                GROUP BY kcu.column_name
            ) k ON k.column_name = c.column_name
            WHERE c.table_schema = %s
              AND c.table_name = %s
            ORDER BY c.ordinal_position
        """
        params = (self._schema_name, table_name, self._schema_name, table_name)
        async with self._conn.cursor() as cur:
            await cur.execute(query, params)
            columns = []
            for row in await cur.fetchall():
                (
                    col_name,
                    data_type,
                    char_length,
                    num_precision,
                    num_scale,
                    is_nullable,
                    key_rank,
                    default,
                    is_identity,
                ) = row
                columns.append(
                    ColumnMetadata(
                        column_name=col_name,
                        column_type=self._format_column_type(
                            data_type, char_length, num_precision, num_scale
                        ),
                        nullable=is_nullable or "",
                        key=_KEY_MARKERS.get(key_rank, ""),
                        default_value=default,
                        extra=self._extra(default, is_identity),
                    )
                )
            return columns

    def _normalize_data_type(self, data_type: str) -> str:
        """Normalize PostgreSQL data type names.

        Maps verbose information_schema types to standard names.
        """
        type_map = {
            "character varying": "varchar",
            "character": "char",
            "timestamp with time zone": "timestamptz",
            "timestamp without time zone": "timestamp",
            "time with time zone": "timetz",
            "time without time zone": "time",
            "integer": "int",
            "boolean": "bool",
        }
        return type_map.get(data_type.lower(), data_type.lower())

    def _format_column_type(
        self,
        data_type: str,
        char_length: int | None,
        num_precision: int | None,
        num_scale: int | None,
    ) -> str:
        """Build a ``desc``-style type string, e.g. ``varchar(255)``."""
        name = self._normalize_data_type(data_type)
        if name in ("varchar", "char") and char_length is not None:
            return f"{name}({char_length})"
        if name == "numeric" and num_precision is not None:
            return f"numeric({num_precision},{num_scale or 0})"
        return name

    @staticmethod
    def _extra(default: str | None, is_identity: str | None) -> str:
        if is_identity == "YES" or (default or "").startswith("nextval("):
            return AUTO_INCREMENT
        return ""


async def introspect_database(
    database_url: str,
    schema_name: str = "public",
    excluded_tables: set[str] | None = None,
    connect_timeout: int = 10,
) -> DatabaseMetadata:
    """Open a catalog connection, introspect the schema, close it.

    Raises:
        DatabaseConnectionError: If the connection cannot be opened.
        IntrospectionError: If any catalog query fails.
    """
    async with SchemaIntrospector(
        database_url,
        schema_name=schema_name,
        excluded_tables=excluded_tables,
        connect_timeout=connect_timeout,
    ) as introspector:
        return await introspector.introspect()
