"""CLI for inspecting and querying a database through db-api.

Usage:
    DB_API_PROFILE=local db-api tables
    db-api --database-url postgresql://localhost/shop describe users
    db-api profiles
    db-api select users --limit 10 --field id --field name
    db-api select posts --where user_id=7 --where title:like=%sql% --link users --json

Commands:
    profiles  - List profiles defined in db.toml
    tables    - List introspected tables
    describe  - Show the columns of one table
    select    - Read rows from a table
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from db_api.config.loader import load_db_config
from db_api.config.settings import get_settings
from db_api.errors import DbApiError
from db_api.factory import get_api
from db_api.query.options import LIST_OPERATORS, Operator

console = Console()


# ============================================================================
# Argument helpers
# ============================================================================


def _parse_where(expr: str) -> tuple[str, dict[str, Any]]:
    """Parse a ``FIELD[:OP]=VALUE`` filter into a where entry.

    The operator defaults to ``eq``.  For ``in``/``notIn`` the value is split
    on commas.  ``null``, ``true`` and ``false`` are passed as ``None``,
    ``True`` and ``False`` for ``is``/``isNot``.

    Raises:
        ValueError: If the expression has no ``=``.

    Example:
        >>> _parse_where("status:in=open,closed")
        ('status', {'in': ['open', 'closed']})
    """
    target, eq, value = expr.partition("=")
    if not eq or not target:
        raise ValueError(f"Invalid filter '{expr}', expected FIELD[:OP]=VALUE")

    field, _, op_name = target.partition(":")
    op = Operator.parse(op_name or Operator.EQ.value)

    parsed: Any = value
    if op in LIST_OPERATORS:
        parsed = [v for v in value.split(",") if v]
    elif op in (Operator.IS, Operator.IS_NOT):
        parsed = {"null": None, "true": True, "false": False}.get(value.lower(), value)

    return field, {op.value: parsed}


def _collect_wheres(exprs: list[str]) -> dict[str, dict[str, Any]]:
    wheres: dict[str, dict[str, Any]] = {}
    for expr in exprs:
        field, entry = _parse_where(expr)
        wheres.setdefault(field, {}).update(entry)
    return wheres


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, get_settings().log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


async def _open_api(args: argparse.Namespace):
    return await get_api(
        profile_name=args.profile,
        database_url=args.database_url,
        config_path=args.config,
    )


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_tables(args: argparse.Namespace) -> int:
    """List tables with column count and primary key."""
    async with await _open_api(args) as api:
        metadata = api.metadata

        table = Table(
            title=f"Tables in {metadata.database_name}",
            show_header=True,
            header_style="bold",
        )
        table.add_column("Table", style="cyan")
        table.add_column("Columns", justify="right")
        table.add_column("Primary Key")

        for meta in metadata.tables:
            pks = [c.column_name for c in meta.primary_key_columns()]
            table.add_row(
                meta.table_name,
                str(len(meta.columns)),
                ", ".join(pks) if pks else "[dim]-[/dim]",
            )

        console.print(table)
    return 0


async def _async_describe(args: argparse.Namespace) -> int:
    """Show ``desc``-style column listing of one table."""
    async with await _open_api(args) as api:
        meta = api.metadata.require_table(args.table)

        table = Table(title=meta.table_name, show_header=True, header_style="bold")
        for heading in ("Field", "Type", "Null", "Key", "Default", "Extra"):
            table.add_column(heading)

        for col in meta.columns:
            table.add_row(
                col.column_name,
                col.column_type,
                col.nullable,
                col.key,
                col.default_value if col.default_value is not None else "NULL",
                col.extra,
            )

        console.print(table)

        for fk in meta.foreign_keys:
            console.print(
                f"  [dim]{fk.column_name} -> "
                f"{fk.references_table}.{fk.references_column}[/dim]"
            )
    return 0


async def _async_select(args: argparse.Namespace) -> int:
    """Run a select and print the rows as a table or JSON."""
    wheres = _collect_wheres(args.where)

    async with await _open_api(args) as api:
        rows = await api.select(
            args.table,
            id=args.id,
            limit=args.limit,
            offset=args.offset,
            fields=args.field,
            wheres=wheres,
            links=args.link,
        )

    if args.json:
        print(json.dumps(rows, indent=2, default=str))
        return 0

    if not rows:
        console.print("[dim]No rows.[/dim]")
        return 0

    table = Table(show_header=True, header_style="bold")
    for key in rows[0]:
        table.add_column(key)
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row.values()))
    console.print(table)
    console.print(f"[dim]{len(rows)} row(s)[/dim]")
    return 0


def _run(coro) -> int:
    """Run an async command, turning known errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except (DbApiError, SQLAlchemyError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List profiles from db.toml.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if db.toml not found or invalid.
    """
    try:
        config = load_db_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = args.profile or get_settings().profile

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if current in config.profiles:
        console.print("\n[bold green]*[/bold green] = active profile")

    return 0


def cmd_tables(args: argparse.Namespace) -> int:
    """List tables.  Wraps the async implementation with ``asyncio.run()``."""
    return _run(_async_tables(args))


def cmd_describe(args: argparse.Namespace) -> int:
    """Describe one table.  Wraps the async implementation with ``asyncio.run()``."""
    return _run(_async_describe(args))


def cmd_select(args: argparse.Namespace) -> int:
    """Select rows.  Wraps the async implementation with ``asyncio.run()``."""
    try:
        _collect_wheres(args.where)
    except (DbApiError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    return _run(_async_select(args))


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-api",
        description="Metadata-driven CRUD access to a PostgreSQL database",
    )
    parser.add_argument("--profile", "-p", help="Profile name from db.toml")
    parser.add_argument("--database-url", help="Connect to this URL directly")
    parser.add_argument(
        "--config", type=Path, default=None, help="Path to db.toml"
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log verbosity (-v info, -vv debug with SQL)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    p_tables = subparsers.add_parser("tables", help="List tables")
    p_tables.set_defaults(func=cmd_tables)

    p_describe = subparsers.add_parser("describe", help="Show the columns of a table")
    p_describe.add_argument("table")
    p_describe.set_defaults(func=cmd_describe)

    p_select = subparsers.add_parser("select", help="Read rows from a table")
    p_select.add_argument("table")
    p_select.add_argument("--id", help="Primary key value")
    p_select.add_argument("--limit", type=int, default=0, help="Max rows (0 = no limit)")
    p_select.add_argument("--offset", type=int, default=0)
    p_select.add_argument(
        "--field", action="append", default=[],
        help="Column to return (repeatable; link columns as TABLE.COLUMN)",
    )
    p_select.add_argument(
        "--where", action="append", default=[],
        help="Filter FIELD[:OP]=VALUE (repeatable; OP defaults to eq)",
    )
    p_select.add_argument(
        "--link", action="append", default=[], help="Join a related table (repeatable)"
    )
    p_select.add_argument("--json", action="store_true", help="Print rows as JSON")
    p_select.set_defaults(func=cmd_select)

    args = parser.parse_args()
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
