# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Dialect contract and type handlers shared by all database dialects.

A Dialect owns everything product-specific about the SQL the engine emits:
identifier quoting, the type table translating logical column types to native
SQL types (and back), sequence support and the introspection queries used by
the schema utilities.

Statements are always written with ``?`` positional placeholders; adapters
convert them to the driver's parameter style.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

from ...errors import ConfigurationError, TransientKeyError, UnknownTypeError
from ...key import Key

LOGICAL_TYPES: tuple[str, ...] = (
    "integer",
    "long",
    "short",
    "float",
    "double",
    "decimal",
    "string",
    "character",
    "text",
    "boolean",
    "date",
    "time",
    "timestamp",
    "binary",
    "object",
)


def _identity(value: Any) -> Any:
    return value


def reference_to_db(value: Any) -> int:
    """Convert an entity reference (Key or raw id) to the stored id."""
    if isinstance(value, Key):
        if value.id is None:
            raise TransientKeyError(f"Cannot store reference to transient key {value}")
        return value.id
    return int(value)


class DataType:
    """Type handler translating one logical type to and from the database.

    Attributes:
        name: Logical type name.
        sql: Native SQL type name used in DDL.
        native_code: Type code the driver reports for this type.
        size: "length" for types taking a length, "precision" for types taking
            precision/scale, None otherwise.
        default_length: Length used in DDL when the mapping gives none.
    """

    def __init__(
        self,
        name: str,
        sql: str,
        native_code: Any,
        *,
        size: str | None = None,
        default_length: int | None = None,
        quoted: bool = False,
        to_db: Callable[[Any], Any] = _identity,
        from_db: Callable[[Any], Any] = _identity,
    ):
        self.name = name
        self.sql = sql
        self.native_code = native_code
        self.size = size
        self.default_length = default_length
        self._quoted = quoted
        self._to_db = to_db
        self._from_db = from_db

    def __repr__(self) -> str:
        return f"<DataType {self.name}:{self.sql}>"

    # -------------------------------------------------------------------------
    # DDL
    # -------------------------------------------------------------------------

    def get_sql(
        self, length: int | None = None, precision: int | None = None, scale: int | None = None
    ) -> str:
        """Return the DDL type clause, e.g. VARCHAR(255) or NUMERIC(10, 2)."""
        if self.size == "length":
            size = length or self.default_length
            return f"{self.sql}({size})" if size else self.sql
        if self.size == "precision" and precision is not None:
            if scale is not None:
                return f"{self.sql}({precision}, {scale})"
            return f"{self.sql}({precision})"
        return self.sql

    def needs_quotes(self) -> bool:
        """True if literal values of this type must be quoted in SQL."""
        return self._quoted

    def quote(self, value: Any) -> str:
        """Return value as a quoted SQL string literal."""
        return "'" + str(value).replace("'", "''") + "'"

    def literal(self, value: Any) -> str:
        """Render value as a SQL literal (used for column defaults)."""
        db_value = self._to_db(value)
        if self._quoted:
            return self.quote(db_value)
        return str(db_value)

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    def bind(self, params: list[Any], position: int, value: Any) -> None:
        """Store value at params[position], converted for the driver."""
        params[position] = None if value is None else self._to_db(value)

    def get(self, row: Mapping[str, Any], column: str) -> Any:
        """Read column from a result row, converted to the Python value."""
        value = row[column]
        if value is None:
            return None
        return self._from_db(value)


class Dialect(ABC):
    """SQL dialect contract.

    Subclasses declare the product they support and build their type table
    in _build_types(). Lookups fail fast: an unknown logical type or native
    code raises UnknownTypeError instead of guessing.
    """

    name: str = ""
    product: str = ""
    native_codes: dict[Any, str] = {}

    def __init__(self) -> None:
        self._types: dict[str, DataType] = self._build_types()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"

    @classmethod
    @abstractmethod
    def supports_version(cls, major_version: int) -> bool:
        """True if this dialect handles the given major product version."""
        ...

    @abstractmethod
    def _build_types(self) -> dict[str, DataType]:
        """Return the type table keyed by logical type name."""
        ...

    # -------------------------------------------------------------------------
    # Quoting
    # -------------------------------------------------------------------------

    def quote(self, identifier: str) -> str:
        """Return identifier quoted for use in SQL."""
        return '"' + identifier.replace('"', '""') + '"'

    def literal(self, value: str) -> str:
        """Return value as a SQL string literal."""
        return "'" + value.replace("'", "''") + "'"

    # -------------------------------------------------------------------------
    # Type table
    # -------------------------------------------------------------------------

    def get_column_type(self, logical_type: str) -> DataType:
        """Return the type handler of a logical type.

        Raises:
            UnknownTypeError: If the dialect has no such type.
        """
        data_type = self._types.get(logical_type)
        if data_type is None:
            raise UnknownTypeError(
                f"Unable to determine data type '{logical_type}' for {self.product}"
            )
        return data_type

    def get_column_type_by_native_code(self, code: Any) -> DataType:
        """Return the type handler for a type code reported by the driver.

        Raises:
            UnknownTypeError: If the code is not in the dialect's table.
        """
        logical_type = self.native_codes.get(code)
        if logical_type is None:
            raise UnknownTypeError(f"Unknown data type {code!r} for {self.product}")
        return self._types[logical_type]

    # -------------------------------------------------------------------------
    # Sequences and storage engine
    # -------------------------------------------------------------------------

    def has_sequence_support(self) -> bool:
        return False

    def sql_next_sequence_value(self, sequence_name: str) -> str:
        """Return the statement fetching the next value of a sequence."""
        raise ConfigurationError(f"{self.product} has no sequence support")

    def sql_sequences(self) -> str:
        """Query listing sequences as (sequence_name, sequence_schema)."""
        raise ConfigurationError(f"{self.product} has no sequence support")

    def engine_type(self) -> str | None:
        """Storage engine appended to CREATE TABLE, None if not applicable."""
        return None

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @abstractmethod
    def sql_tables(self) -> str:
        """Query listing tables as (table_name, table_schema)."""
        ...

    @abstractmethod
    def sql_columns(self) -> str:
        """Query with one ``?`` (table name) listing its columns.

        Result columns: column_name, data_type, length, nullable,
        column_default, precision, scale.
        """
        ...

    @abstractmethod
    def sql_primary_keys(self) -> str:
        """Query with one ``?`` (table name) listing its primary key columns.

        Result columns: column_name, key_seq, pk_name.
        """
        ...

    def normalize_column(self, row: dict[str, Any]) -> dict[str, Any]:
        """Hook to normalize one row returned by sql_columns()."""
        return row


__all__ = ["LOGICAL_TYPES", "DataType", "Dialect", "reference_to_db"]
