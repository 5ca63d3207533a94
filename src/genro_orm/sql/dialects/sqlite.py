# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQLite dialect.

SQLite has dynamic typing: the driver reports no column types, so the native
codes are the storage classes of the returned values (INTEGER, REAL, TEXT,
BLOB, NULL) as computed by SqliteAdapter.fetch_described(). Values without a
native SQLite representation are stored as:

- boolean: 0/1
- date, time, timestamp: ISO 8601 text
- decimal: the exact decimal string in a TEXT column, converted back to
  Decimal on read
"""

from __future__ import annotations

import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from .base import DataType, Dialect, reference_to_db

_DECLARED_TYPE = re.compile(r"^\s*([A-Za-z ]+?)\s*\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)\s*$")
_NUMERIC_TYPES = frozenset({"NUMERIC", "DECIMAL"})


def _to_iso(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return value


def _parse(parser: Any) -> Any:
    def convert(value: Any) -> Any:
        return parser(value) if isinstance(value, str) else value

    return convert


class SqliteDialect(Dialect):
    """Dialect for SQLite 3 (no sequences, ids fall back to MAX()+1)."""

    name = "sqlite"
    product = "SQLite"
    native_codes = {
        "INTEGER": "long",
        "REAL": "double",
        "TEXT": "text",
        "BLOB": "binary",
        "NULL": "text",
    }

    @classmethod
    def supports_version(cls, major_version: int) -> bool:
        return major_version == 3

    def _build_types(self) -> dict[str, DataType]:
        return {
            "integer": DataType("integer", "INTEGER", "INTEGER", to_db=int, from_db=int),
            "long": DataType("long", "INTEGER", "INTEGER", to_db=int, from_db=int),
            "short": DataType("short", "INTEGER", "INTEGER", to_db=int, from_db=int),
            "float": DataType("float", "REAL", "REAL", to_db=float, from_db=float),
            "double": DataType("double", "REAL", "REAL", to_db=float, from_db=float),
            "decimal": DataType(
                "decimal",
                "TEXT",
                "TEXT",
                quoted=True,
                to_db=str,
                from_db=lambda v: Decimal(str(v)),
            ),
            "string": DataType(
                "string", "VARCHAR", "TEXT", size="length", default_length=255, quoted=True, to_db=str
            ),
            "character": DataType(
                "character", "CHAR", "TEXT", size="length", default_length=1, quoted=True, to_db=str
            ),
            "text": DataType("text", "TEXT", "TEXT", quoted=True, to_db=str),
            "boolean": DataType(
                "boolean", "BOOLEAN", "INTEGER", to_db=lambda v: int(bool(v)), from_db=bool
            ),
            "date": DataType(
                "date", "DATE", "TEXT", quoted=True, to_db=_to_iso, from_db=_parse(date.fromisoformat)
            ),
            "time": DataType(
                "time", "TIME", "TEXT", quoted=True, to_db=_to_iso, from_db=_parse(time.fromisoformat)
            ),
            "timestamp": DataType(
                "timestamp",
                "TIMESTAMP",
                "TEXT",
                quoted=True,
                to_db=_to_iso,
                from_db=_parse(datetime.fromisoformat),
            ),
            "binary": DataType("binary", "BLOB", "BLOB", to_db=bytes, from_db=bytes),
            "object": DataType("object", "INTEGER", "INTEGER", to_db=reference_to_db, from_db=int),
        }

    def sql_tables(self) -> str:
        return (
            "SELECT name AS table_name, NULL AS table_schema FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )

    def sql_columns(self) -> str:
        return (
            'SELECT name AS column_name, type AS data_type, NULL AS length, NOT "notnull" AS nullable, '
            "dflt_value AS column_default, NULL AS precision, NULL AS scale "
            "FROM pragma_table_info(?) ORDER BY cid"
        )

    def sql_primary_keys(self) -> str:
        return (
            "SELECT name AS column_name, pk AS key_seq, NULL AS pk_name "
            "FROM pragma_table_info(?) WHERE pk > 0 ORDER BY pk"
        )

    def normalize_column(self, row: dict[str, Any]) -> dict[str, Any]:
        """Split declared types like VARCHAR(100) or NUMERIC(10, 2) into parts."""
        match = _DECLARED_TYPE.match(row.get("data_type") or "")
        if match is None:
            return row
        type_name, first, second = match.groups()
        row["data_type"] = type_name.upper()
        if row["data_type"] in _NUMERIC_TYPES:
            row["precision"] = int(first)
            row["scale"] = int(second) if second is not None else None
        else:
            row["length"] = int(first)
        return row


__all__ = ["SqliteDialect"]
