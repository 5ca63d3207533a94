# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQL dialects keyed by database product name.

Components:
    Dialect: Abstract base class (quoting, type table, sequences, introspection).
    DataType: Type handler for one logical column type.
    SqliteDialect: SQLite 3.
    PostgresDialect: PostgreSQL 10+.
    get_dialect: Factory selecting the dialect for a product and major version.

Example:
    Select the dialect reported by a live connection::

        product, major = await conn.server_info()
        dialect = get_dialect(product, major)
        dialect.quote("person")                        # '"person"'
        dialect.get_column_type("string").get_sql(50)  # 'VARCHAR(50)'
"""

from __future__ import annotations

from ...errors import UnsupportedDatabaseError
from .base import LOGICAL_TYPES, DataType, Dialect
from .postgresql import PostgresDialect
from .sqlite import SqliteDialect

__all__ = [
    "LOGICAL_TYPES",
    "DataType",
    "Dialect",
    "SqliteDialect",
    "PostgresDialect",
    "DIALECTS",
    "get_dialect",
]

# Dialect registry, keyed by the product name the adapter reports
DIALECTS: dict[str, type[Dialect]] = {
    "SQLite": SqliteDialect,
    "PostgreSQL": PostgresDialect,
}


def get_dialect(product: str, major_version: int) -> Dialect:
    """Create the dialect for a database product and major version.

    Args:
        product: Product name as reported by DbAdapter.server_info().
        major_version: Major server version.

    Returns:
        Dialect instance.

    Raises:
        UnsupportedDatabaseError: If the product is unknown or the version
            is not supported by its dialect.
    """
    dialect_class = DIALECTS.get(product)
    if dialect_class is None:
        raise UnsupportedDatabaseError(product)
    if not dialect_class.supports_version(major_version):
        raise UnsupportedDatabaseError(product, major_version)
    return dialect_class()
