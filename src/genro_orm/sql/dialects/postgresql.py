# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""PostgreSQL dialect (native sequences, type codes are pg_type OIDs)."""

from __future__ import annotations

from decimal import Decimal

from .base import DataType, Dialect, reference_to_db


def _to_decimal(value: object) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class PostgresDialect(Dialect):
    """Dialect for PostgreSQL 10 and later."""

    name = "postgresql"
    product = "PostgreSQL"
    native_codes = {
        16: "boolean",
        17: "binary",
        18: "character",
        19: "string",  # name
        20: "long",
        21: "short",
        23: "integer",
        25: "text",
        26: "long",  # oid
        700: "float",
        701: "double",
        1042: "character",
        1043: "string",
        1082: "date",
        1083: "time",
        1114: "timestamp",
        1184: "timestamp",
        1266: "time",
        1700: "decimal",
    }

    @classmethod
    def supports_version(cls, major_version: int) -> bool:
        return major_version >= 10

    def _build_types(self) -> dict[str, DataType]:
        return {
            "integer": DataType("integer", "INTEGER", 23, to_db=int),
            "long": DataType("long", "BIGINT", 20, to_db=int),
            "short": DataType("short", "SMALLINT", 21, to_db=int),
            "float": DataType("float", "REAL", 700, to_db=float),
            "double": DataType("double", "DOUBLE PRECISION", 701, to_db=float),
            "decimal": DataType(
                "decimal", "NUMERIC", 1700, size="precision", to_db=_to_decimal, from_db=_to_decimal
            ),
            "string": DataType(
                "string", "VARCHAR", 1043, size="length", default_length=255, quoted=True, to_db=str
            ),
            "character": DataType(
                "character", "CHAR", 1042, size="length", default_length=1, quoted=True, to_db=str
            ),
            "text": DataType("text", "TEXT", 25, quoted=True, to_db=str),
            "boolean": DataType("boolean", "BOOLEAN", 16, to_db=bool),
            "date": DataType("date", "DATE", 1082, quoted=True),
            "time": DataType("time", "TIME", 1083, quoted=True),
            "timestamp": DataType("timestamp", "TIMESTAMP", 1114, quoted=True),
            "binary": DataType("binary", "BYTEA", 17, to_db=bytes, from_db=bytes),
            "object": DataType("object", "INTEGER", 23, to_db=reference_to_db, from_db=int),
        }

    def has_sequence_support(self) -> bool:
        return True

    def sql_next_sequence_value(self, sequence_name: str) -> str:
        return f"SELECT nextval({self.literal(self.quote(sequence_name))})"

    def sql_sequences(self) -> str:
        return (
            "SELECT sequence_name, sequence_schema FROM information_schema.sequences "
            "WHERE sequence_schema = current_schema() ORDER BY sequence_name"
        )

    def sql_tables(self) -> str:
        return (
            "SELECT table_name, table_schema FROM information_schema.tables "
            "WHERE table_type = 'BASE TABLE' AND table_schema = current_schema() "
            "ORDER BY table_name"
        )

    def sql_columns(self) -> str:
        return (
            "SELECT column_name, data_type, character_maximum_length AS length, "
            "is_nullable = 'YES' AS nullable, column_default, "
            "numeric_precision AS precision, numeric_scale AS scale "
            "FROM information_schema.columns "
            "WHERE table_schema = current_schema() AND table_name = ? "
            "ORDER BY ordinal_position"
        )

    def sql_primary_keys(self) -> str:
        return (
            "SELECT kcu.column_name, kcu.ordinal_position AS key_seq, tc.constraint_name AS pk_name "
            "FROM information_schema.table_constraints tc "
            "JOIN information_schema.key_column_usage kcu "
            "ON kcu.constraint_name = tc.constraint_name "
            "AND kcu.table_schema = tc.table_schema AND kcu.table_name = tc.table_name "
            "WHERE tc.constraint_type = 'PRIMARY KEY' AND tc.table_schema = current_schema() "
            "AND tc.table_name = ? ORDER BY kcu.ordinal_position"
        )


__all__ = ["PostgresDialect"]
