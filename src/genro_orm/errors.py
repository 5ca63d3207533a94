# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exception hierarchy for genro-orm.

Four families, matching how callers are expected to react:

    ConfigurationError: Raised at registration or SQL-generation time
        (unsupported database, unknown logical type, invalid mapping).
    IntegrityError: The database returned data that breaks an assumption
        of the engine, e.g. more than one row for a single id.
    ContractError: Programmer errors (unregistered entity type, update of a
        transient key, use of a closed transaction or connection).
    Driver errors: Not wrapped. Whatever aiosqlite/sqlite3 or psycopg raise
        propagates unchanged once resources are released.
"""

from __future__ import annotations

from typing import Any


class OrmError(Exception):
    """Base class for all genro-orm errors."""


# -----------------------------------------------------------------------------
# Configuration errors
# -----------------------------------------------------------------------------


class ConfigurationError(OrmError):
    """Invalid configuration detected before any statement is executed."""


class UnsupportedDatabaseError(ConfigurationError):
    """Raised when the database product or its version has no dialect."""

    def __init__(self, product: str, version: int | None = None):
        self.product = product
        self.version = version
        if version is None:
            msg = f"Unsupported database {product}"
        else:
            msg = f"Unsupported {product} version {version}"
        super().__init__(msg)


class UnknownTypeError(ConfigurationError):
    """Raised when a logical type or native type code has no type handler."""


class MappingError(ConfigurationError):
    """Raised for invalid entity mappings or unmapped properties."""


# -----------------------------------------------------------------------------
# Integrity errors
# -----------------------------------------------------------------------------


class IntegrityError(OrmError):
    """Data returned by the database violates an engine assumption."""


class MultipleRowsError(IntegrityError):
    """Raised when a lookup by id returns more than one row."""

    def __init__(self, table: str, count: int, id: Any = None):
        self.table = table
        self.count = count
        self.id = id
        if id is not None:
            msg = f"Expected 1 row in '{table}' with id={id!r}, found {count}"
        else:
            msg = f"Expected 1 row in '{table}', found {count}"
        super().__init__(msg)


# -----------------------------------------------------------------------------
# Caller contract violations
# -----------------------------------------------------------------------------


class ContractError(OrmError):
    """The caller used the API in a way it does not support."""


class EntityNotDefinedError(ContractError, LookupError):
    """Raised when an entity type name was never registered with the store."""

    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Entity '{type_name}' is not defined")


class TransientKeyError(ContractError):
    """Raised when an operation needs a persistent key but got a transient one."""


class KeyAlreadyPersistentError(ContractError):
    """Raised when an id is assigned to a key that already has one."""


class TransactionClosedError(ContractError):
    """Raised when a committed or rolled back transaction is used again."""


class ConnectionClosedError(ContractError):
    """Raised when a connection is used after it was returned to the pool."""


class NotLoadedError(ContractError):
    """Raised on synchronous property access of an entity not loaded yet."""


__all__ = [
    "OrmError",
    "ConfigurationError",
    "UnsupportedDatabaseError",
    "UnknownTypeError",
    "MappingError",
    "IntegrityError",
    "MultipleRowsError",
    "ContractError",
    "EntityNotDefinedError",
    "TransientKeyError",
    "KeyAlreadyPersistentError",
    "TransactionClosedError",
    "ConnectionClosedError",
    "NotLoadedError",
]
