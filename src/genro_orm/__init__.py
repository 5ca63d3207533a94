# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""genro-orm: async object-relational persistence for SQLite and PostgreSQL."""

from .config import OrmConfig, config_from_env
from .entity import Entity, EntityType, Storable
from .errors import (
    ConfigurationError,
    ContractError,
    EntityNotDefinedError,
    IntegrityError,
    MappingError,
    MultipleRowsError,
    OrmError,
    UnknownTypeError,
    UnsupportedDatabaseError,
)
from .key import Key
from .mapping import Mapping
from .store import Store
from .transaction import Transaction, TransactionState

__version__ = "0.1.0"

__all__ = [
    "Store",
    "Key",
    "Mapping",
    "Entity",
    "EntityType",
    "Storable",
    "Transaction",
    "TransactionState",
    "OrmConfig",
    "config_from_env",
    "OrmError",
    "ConfigurationError",
    "UnsupportedDatabaseError",
    "UnknownTypeError",
    "MappingError",
    "IntegrityError",
    "MultipleRowsError",
    "ContractError",
    "EntityNotDefinedError",
]
