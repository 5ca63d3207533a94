# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""DDL and introspection utilities.

Every function takes ownership of the Connection it receives: the connection
is closed when the function returns, whether it succeeds, returns early or
raises. Pass a fresh connection to each call.

Example:
    Creating a table::

        await create_table(
            await store.get_connection(),
            dialect,
            "person",
            [
                ColumnDefinition("id", "integer", nullable=False),
                ColumnDefinition("name", "string", nullable=False),
                ColumnDefinition("age", "integer"),
            ],
            "id",
        )
        # CREATE TABLE "person" ("id" INTEGER NOT NULL, "name" VARCHAR(255) NOT NULL,
        #                        "age" INTEGER, PRIMARY KEY ("id"))
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .connection import Connection
    from .dialects.base import Dialect

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Column and table descriptions
# -----------------------------------------------------------------------------


@dataclass
class ColumnDefinition:
    """Column to create: name, logical type and DDL options."""

    name: str
    type: str
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    default: Any = None
    nullable: bool = True


@dataclass
class ColumnInfo:
    """Column as reported by the database catalog."""

    name: str
    type: str
    length: int | None
    nullable: bool
    default: str | None
    precision: int | None
    scale: int | None


@dataclass
class PrimaryKeyInfo:
    """One primary key column as reported by the database catalog."""

    name: str
    key_seq: int
    pk_name: str | None


@dataclass
class TableInfo:
    """Table with its columns and primary key columns."""

    name: str
    schema: str | None
    columns: list[ColumnInfo] = field(default_factory=list)
    primary_keys: list[PrimaryKeyInfo] = field(default_factory=list)


# -----------------------------------------------------------------------------
# DDL
# -----------------------------------------------------------------------------


def build_create_table(
    dialect: Dialect,
    table_name: str,
    columns: Sequence[ColumnDefinition],
    primary_keys: str | Sequence[str] | None = None,
) -> str:
    """Return the CREATE TABLE statement for the given columns.

    Raises:
        UnknownTypeError: If a column type is not in the dialect's type table.
    """
    parts = []
    for column in columns:
        data_type = dialect.get_column_type(column.type)
        sql = f"{dialect.quote(column.name)} {data_type.get_sql(column.length, column.precision, column.scale)}"
        if column.default is not None:
            sql += f" DEFAULT {data_type.literal(column.default)}"
        if not column.nullable:
            sql += " NOT NULL"
        parts.append(sql)

    if primary_keys is not None:
        if isinstance(primary_keys, str):
            primary_keys = [primary_keys]
        parts.append(f"PRIMARY KEY ({', '.join(dialect.quote(name) for name in primary_keys)})")

    sql = f"CREATE TABLE {dialect.quote(table_name)} ({', '.join(parts)})"
    engine = dialect.engine_type()
    if engine is not None:
        sql += f" ENGINE={engine}"
    return sql


async def _execute_ddl(conn: Connection, sql: str) -> int:
    await conn.set_read_only(False)
    await conn.set_autocommit(True)
    return await conn.execute(sql)


async def create_table(
    conn: Connection,
    dialect: Dialect,
    table_name: str,
    columns: Sequence[ColumnDefinition],
    primary_keys: str | Sequence[str] | None = None,
) -> int:
    """Create a table, then close the connection.

    Args:
        conn: Connection to use (closed on return).
        dialect: Dialect rendering types and identifiers.
        table_name: Name of the table.
        columns: Column definitions in table order.
        primary_keys: Primary key column name(s), or None for no key.

    Raises:
        UnknownTypeError: If a column type is unknown. No SQL is sent.
    """
    try:
        sql = build_create_table(dialect, table_name, columns, primary_keys)
        logger.info("createTable: %s", sql)
        return await _execute_ddl(conn, sql)
    finally:
        await conn.close()


async def create_sequence(conn: Connection, dialect: Dialect, sequence_name: str) -> int:
    """Create a sequence starting at 1, then close the connection."""
    try:
        sql = f"CREATE SEQUENCE {dialect.quote(sequence_name)} START WITH 1 INCREMENT BY 1"
        logger.info("createSequence: %s", sql)
        return await _execute_ddl(conn, sql)
    finally:
        await conn.close()


async def _drop(
    conn: Connection, dialect: Dialect, kind: str, name: str, schema: str | None
) -> None:
    try:
        target = dialect.quote(name)
        if schema is not None:
            target = f"{dialect.quote(schema)}.{target}"
        sql = f"DROP {kind} {target}"
        logger.info("Dropping %s %s", kind, sql)
        await _execute_ddl(conn, sql)
    finally:
        await conn.close()


async def drop_table(
    conn: Connection, dialect: Dialect, table_name: str, schema: str | None = None
) -> None:
    """Drop a table (optionally schema-qualified), then close the connection."""
    await _drop(conn, dialect, "TABLE", table_name, schema)


async def drop_sequence(
    conn: Connection, dialect: Dialect, sequence_name: str, schema: str | None = None
) -> None:
    """Drop a sequence (optionally schema-qualified), then close the connection."""
    await _drop(conn, dialect, "SEQUENCE", sequence_name, schema)


# -----------------------------------------------------------------------------
# Introspection
# -----------------------------------------------------------------------------


async def _read_columns(conn: Connection, dialect: Dialect, table_name: str) -> list[ColumnInfo]:
    rows = await conn.fetch_all(dialect.sql_columns(), [table_name])
    result = []
    for row in rows:
        row = dialect.normalize_column(dict(row))
        result.append(
            ColumnInfo(
                name=row["column_name"],
                type=row["data_type"],
                length=row["length"],
                nullable=bool(row["nullable"]),
                default=row["column_default"],
                precision=row["precision"],
                scale=row["scale"],
            )
        )
    return result


async def _read_primary_keys(
    conn: Connection, dialect: Dialect, table_name: str
) -> list[PrimaryKeyInfo]:
    rows = await conn.fetch_all(dialect.sql_primary_keys(), [table_name])
    return [
        PrimaryKeyInfo(name=row["column_name"], key_seq=int(row["key_seq"]), pk_name=row["pk_name"])
        for row in rows
    ]


async def get_columns(conn: Connection, dialect: Dialect, table_name: str) -> list[ColumnInfo]:
    """Return the columns of a table in table order, then close the connection."""
    try:
        await conn.set_autocommit(True)
        return await _read_columns(conn, dialect, table_name)
    finally:
        await conn.close()


async def get_primary_keys(
    conn: Connection, dialect: Dialect, table_name: str
) -> list[PrimaryKeyInfo]:
    """Return the primary key columns of a table, then close the connection."""
    try:
        await conn.set_autocommit(True)
        return await _read_primary_keys(conn, dialect, table_name)
    finally:
        await conn.close()


async def get_tables(conn: Connection, dialect: Dialect) -> list[TableInfo]:
    """Return all tables with columns and primary keys, then close the connection."""
    try:
        await conn.set_autocommit(True)
        tables = []
        for row in await conn.fetch_all(dialect.sql_tables()):
            name = row["table_name"]
            tables.append(
                TableInfo(
                    name=name,
                    schema=row["table_schema"],
                    columns=await _read_columns(conn, dialect, name),
                    primary_keys=await _read_primary_keys(conn, dialect, name),
                )
            )
        return tables
    finally:
        await conn.close()


async def table_exists(conn: Connection, dialect: Dialect, table_name: str) -> bool:
    """True if the database has a table with this name. Closes the connection."""
    try:
        await conn.set_autocommit(True)
        rows = await conn.fetch_all(dialect.sql_tables())
        return any(row["table_name"] == table_name for row in rows)
    finally:
        await conn.close()


async def sequence_exists(conn: Connection, dialect: Dialect, sequence_name: str) -> bool:
    """True if the database has a sequence with this name. Closes the connection.

    Raises:
        ConfigurationError: If the dialect has no sequence support.
    """
    try:
        await conn.set_autocommit(True)
        rows = await conn.fetch_all(dialect.sql_sequences())
        return any(row["sequence_name"] == sequence_name for row in rows)
    finally:
        await conn.close()


__all__ = [
    "ColumnDefinition",
    "ColumnInfo",
    "PrimaryKeyInfo",
    "TableInfo",
    "build_create_table",
    "create_table",
    "create_sequence",
    "drop_table",
    "drop_sequence",
    "get_columns",
    "get_primary_keys",
    "get_tables",
    "table_exists",
    "sequence_exists",
]
