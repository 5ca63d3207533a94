# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""CLI entry point for genro-orm (gorm command).

Administration commands for a store's database. The database defaults to
GENRO_ORM_DB (see config_from_env) and can be overridden with --db.

Commands:
    tables: List tables with their columns and primary keys
    columns: Show the columns of one table
    query: Run a read-only SQL query and print the rows
    drop-table: Drop a table
    drop-sequence: Drop a sequence
    dialect: Show the detected database product and dialect
    version: Show version info
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import OrmConfig, config_from_env
from .errors import OrmError
from .sql.schema import drop_sequence, drop_table, get_columns, get_tables
from .store import Store

console = Console()


def setup_logging(level: str) -> None:
    """Route library logging to a RichHandler at the given level."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def run_with_store(config: OrmConfig, action: Callable[[Store], Awaitable[Any]]) -> Any:
    """Run action(store) on a fresh store, shutting the store down afterwards.

    Library errors are printed and turned into a non-zero exit status.
    """

    async def _run() -> Any:
        async with Store.from_config(config) as store:
            return await action(store)

    try:
        return asyncio.run(_run())
    except OrmError as e:
        console.print(f"[red]error:[/red] {e}")
        raise SystemExit(1) from e


def _display(value: Any) -> str:
    return "[dim]NULL[/dim]" if value is None else str(value)


# ============================================================================
# CLI Commands
# ============================================================================


@click.group()
@click.version_option(package_name="genro-orm")
@click.option("--db", "db_path", default=None, help="Connection string. Default: $GENRO_ORM_DB.")
@click.option("--verbose", "-v", is_flag=True, help="Log generated SQL (DEBUG level).")
@click.pass_context
def main(ctx: click.Context, db_path: str | None, verbose: bool) -> None:
    """Genro ORM - inspect and administer entity store databases."""
    config = config_from_env()
    if db_path:
        config = replace(config, db_path=db_path)
    if verbose:
        config = replace(config, log_level="DEBUG")
    setup_logging(config.log_level)
    ctx.obj = config


@main.command("tables")
@click.pass_obj
def tables_cmd(config: OrmConfig) -> None:
    """List tables with their columns and primary keys."""

    async def action(store: Store) -> Any:
        dialect = await store.determine_dialect()
        return await get_tables(await store.get_connection(), dialect)

    tables = run_with_store(config, action)
    if not tables:
        console.print("[dim]No tables found.[/dim]")
        return

    table = Table(title="Tables")
    table.add_column("Name", style="cyan")
    table.add_column("Schema")
    table.add_column("Columns", justify="right")
    table.add_column("Primary key")

    for info in tables:
        table.add_row(
            info.name,
            _display(info.schema),
            str(len(info.columns)),
            ", ".join(pk.name for pk in info.primary_keys) or "[dim]-[/dim]",
        )

    console.print(table)


@main.command("columns")
@click.argument("table_name")
@click.pass_obj
def columns_cmd(config: OrmConfig, table_name: str) -> None:
    """Show the columns of TABLE_NAME."""

    async def action(store: Store) -> Any:
        dialect = await store.determine_dialect()
        return await get_columns(await store.get_connection(), dialect, table_name)

    columns = run_with_store(config, action)
    if not columns:
        console.print(f"[dim]Table '{table_name}' has no columns or does not exist.[/dim]")
        return

    table = Table(title=f"Columns of {table_name}")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Length", justify="right")
    table.add_column("Nullable")
    table.add_column("Default")

    for column in columns:
        table.add_row(
            column.name,
            column.type,
            _display(column.length),
            "[green]yes[/green]" if column.nullable else "no",
            _display(column.default),
        )

    console.print(table)


@main.command("query")
@click.argument("sql")
@click.pass_obj
def query_cmd(config: OrmConfig, sql: str) -> None:
    """Run a read-only SQL query and print the rows."""
    rows = run_with_store(config, lambda store: store.query(sql))
    if not rows:
        console.print("[dim]No rows.[/dim]")
        return

    table = Table()
    for label in rows[0]:
        table.add_column(label)
    for row in rows:
        table.add_row(*(_display(value) for value in row.values()))

    console.print(table)
    console.print(f"[dim]{len(rows)} row(s)[/dim]")


@main.command("drop-table")
@click.argument("name")
@click.option("--schema", "-s", default=None, help="Schema of the table.")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def drop_table_cmd(config: OrmConfig, name: str, schema: str | None, yes: bool) -> None:
    """Drop table NAME."""
    if not yes:
        click.confirm(f"Drop table '{name}'?", abort=True)

    async def action(store: Store) -> None:
        dialect = await store.determine_dialect()
        await drop_table(await store.get_connection(), dialect, name, schema)

    run_with_store(config, action)
    console.print(f"[green]Dropped table {name}[/green]")


@main.command("drop-sequence")
@click.argument("name")
@click.option("--schema", "-s", default=None, help="Schema of the sequence.")
@click.pass_obj
def drop_sequence_cmd(config: OrmConfig, name: str, schema: str | None) -> None:
    """Drop sequence NAME."""

    async def action(store: Store) -> None:
        dialect = await store.determine_dialect()
        await drop_sequence(await store.get_connection(), dialect, name, schema)

    run_with_store(config, action)
    console.print(f"[green]Dropped sequence {name}[/green]")


@main.command("dialect")
@click.pass_obj
def dialect_cmd(config: OrmConfig) -> None:
    """Show the detected database product and dialect."""

    async def action(store: Store) -> Any:
        return await store.determine_dialect()

    dialect = run_with_store(config, action)
    sequences = "yes" if dialect.has_sequence_support() else "no"
    console.print(f"{dialect.product} ({type(dialect).__name__}, sequences: {sequences})")


@main.command("version")
def version_cmd() -> None:
    """Show version information."""
    from genro_orm import __version__

    console.print(f"genro-orm {__version__}")


if __name__ == "__main__":
    main()
