# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Store: entity registry, dialect detection and CRUD SQL execution.

The store owns a connection pool (DbAdapter), the registry of entity types
and the dialect detected from the live database.

Connection usage:
    - Without a transaction, every operation borrows one connection through
      _unit_of_work() and closes it on every exit path. Writes run in
      autocommit mode, reads run read-only and are rolled back on close.
    - With a transaction, the operation runs on the transaction's connection
      and leaves it open.

Id generation:
    generate_id() uses the mapping's sequence when the dialect supports
    sequences, otherwise ``SELECT MAX(id) + 1``. The MAX fallback is not
    safe against concurrent writers: two transactions can read the same
    maximum, and the second insert then fails on the primary key.

Example:
    Defining an entity and storing rows::

        store = Store("/data/app.db")
        Person = await store.define_entity("Person", {
            "table": "person",
            "id": {"column": "id"},
            "properties": {
                "name": {"type": "string"},
                "age": {"type": "integer", "nullable": True},
            },
        })

        ann = Person(name="Ann")
        await ann.save()                          # id 1

        entity = await store.load_entity("Person", 1)
        # {'name': 'Ann', 'age': None}, entity.key == Key("Person", 1)

        async with store.transaction() as tx:
            await store.remove(entity.key, tx)

        await store.shutdown()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from .entity import Entity, EntityType, Storable
from .errors import (
    EntityNotDefinedError,
    KeyAlreadyPersistentError,
    MultipleRowsError,
    TransientKeyError,
    UnknownTypeError,
)
from .key import Key
from .mapping import Mapping
from .sql.adapters import DbAdapter, get_adapter
from .sql.connection import Connection
from .sql.dialects import Dialect, get_dialect
from .sql.schema import (
    ColumnDefinition,
    create_sequence,
    create_table,
    sequence_exists,
    table_exists,
)
from .transaction import Transaction

if TYPE_CHECKING:
    from .config import OrmConfig

logger = logging.getLogger(__name__)


class Store:
    """Relational store for registered entity types.

    Attributes:
        adapter: Connection pool used for every operation.
    """

    def __init__(
        self,
        connection_string: str | None = None,
        *,
        adapter: DbAdapter | None = None,
        max_connections: int = 10,
    ):
        """Initialize the store.

        Args:
            connection_string: Database connection string (see get_adapter).
            adapter: Ready adapter, used instead of connection_string.
            max_connections: Pool size when the adapter is built here.

        Raises:
            ValueError: If neither connection_string nor adapter is given.
        """
        if adapter is None:
            if connection_string is None:
                raise ValueError("Store needs a connection string or an adapter")
            adapter = get_adapter(connection_string, max_connections=max_connections)
        self.adapter = adapter
        self._dialect: Dialect | None = None
        self._registry: dict[str, EntityType] = {}
        self._define_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: OrmConfig) -> Store:
        """Create a store from an OrmConfig."""
        adapter = get_adapter(
            config.db_path,
            max_connections=config.max_connections,
            connect_timeout=config.connect_timeout,
        )
        return cls(adapter=adapter)

    async def __aenter__(self) -> Store:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.shutdown()

    async def shutdown(self) -> None:
        """Close the connection pool (application shutdown)."""
        await self.adapter.shutdown()

    # -------------------------------------------------------------------------
    # Connections and dialect
    # -------------------------------------------------------------------------

    async def get_connection(self) -> Connection:
        """Borrow a connection from the pool. The caller must close() it."""
        return Connection(self.adapter, await self.adapter.acquire())

    async def determine_dialect(self) -> Dialect:
        """Return the dialect of the database, detecting it on first call.

        Raises:
            UnsupportedDatabaseError: If the product or version is unsupported.
        """
        if self._dialect is not None:
            return self._dialect
        conn = await self.get_connection()
        try:
            product, major_version = await conn.server_info()
        finally:
            await conn.close()
        dialect = get_dialect(product, major_version)
        logger.info("Detected %s %s, using %s", product, major_version, type(dialect).__name__)
        self._dialect = dialect
        return dialect

    def reset_dialect(self) -> None:
        """Forget the detected dialect; the next operation detects it again."""
        self._dialect = None

    @asynccontextmanager
    async def _unit_of_work(
        self, transaction: Transaction | None = None, *, read_only: bool = False
    ) -> AsyncIterator[Connection]:
        """Yield the connection one operation runs on.

        With a transaction its connection is yielded and left open. Otherwise a
        connection is borrowed, configured and closed on every exit path.
        """
        if transaction is not None:
            yield transaction.connection
            return
        conn = await self.get_connection()
        try:
            if read_only:
                await conn.set_read_only(True)
                await conn.set_autocommit(False)
            else:
                await conn.set_autocommit(True)
                await conn.set_read_only(False)
            yield conn
        finally:
            await conn.close()

    # -------------------------------------------------------------------------
    # Entity registry
    # -------------------------------------------------------------------------

    async def define_entity(self, type: str, mapping: Mapping | dict[str, Any]) -> EntityType:
        """Register an entity type, creating its table and sequence if missing.

        Table and sequence are checked separately, so a registration that
        failed after creating the table creates the sequence when retried.

        Registration is idempotent: defining a type name again returns the
        existing EntityType, runs no DDL and ignores the new mapping.

        Args:
            type: Entity type name.
            mapping: Mapping or mapping spec dict.

        Returns:
            The registered EntityType.

        Raises:
            MappingError: If the mapping spec is invalid.
            UnknownTypeError: If a property type is unknown to the dialect.
        """
        async with self._define_lock:
            entity_type = self._registry.get(type)
            if entity_type is not None:
                return entity_type

            mapping = Mapping.from_spec(mapping)
            dialect = await self.determine_dialect()
            for _, _, prop in mapping.columns():
                dialect.get_column_type(prop.type)

            if not await table_exists(await self.get_connection(), dialect, mapping.table_name):
                await self._create_table(dialect, mapping)
            if mapping.has_id_sequence() and dialect.has_sequence_support():
                sequence = mapping.id_sequence_name
                if not await sequence_exists(await self.get_connection(), dialect, sequence):
                    await create_sequence(await self.get_connection(), dialect, sequence)

            entity_type = self._registry[type] = EntityType(self, type, mapping)
            return entity_type

    async def _create_table(self, dialect: Dialect, mapping: Mapping) -> None:
        columns = [ColumnDefinition(mapping.id_column_name, "integer", nullable=False)]
        primary_keys = [mapping.id_column_name]
        for _, column, prop in mapping.columns():
            columns.append(
                ColumnDefinition(
                    column,
                    prop.type,
                    length=prop.length,
                    precision=prop.precision,
                    scale=prop.scale,
                    default=prop.default,
                    nullable=prop.nullable,
                )
            )
            if prop.unique:
                primary_keys.append(column)
        await create_table(
            await self.get_connection(), dialect, mapping.table_name, columns, primary_keys
        )

    def get_entity_type(self, type: str) -> EntityType:
        """Return the registered EntityType.

        Raises:
            EntityNotDefinedError: If the type was never defined.
        """
        entity_type = self._registry.get(type)
        if entity_type is None:
            raise EntityNotDefinedError(type)
        return entity_type

    def get_entity_mapping(self, type: str) -> Mapping:
        return self.get_entity_type(type).mapping

    @property
    def entity_types(self) -> list[str]:
        """Names of the registered entity types."""
        return list(self._registry)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def create_transaction(self) -> Transaction:
        """Open a transaction on a dedicated connection."""
        return await Transaction.begin(self, await self.get_connection())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Context manager: commit on clean exit, rollback on exception.

        Usage:
            async with store.transaction() as tx:
                await person.save(tx)
        """
        tx = await self.create_transaction()
        try:
            yield tx
        except BaseException:
            if tx.is_open:
                await tx.rollback()
            raise
        else:
            if tx.is_open:
                await tx.commit()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def query(self, sql: str) -> list[dict[str, Any]]:
        """Run a read-only query, converting values by their native type codes.

        Raises:
            UnknownTypeError: If a column's type code is unknown to the dialect.
        """
        dialect = await self.determine_dialect()
        async with self._unit_of_work(read_only=True) as conn:
            description, rows = await conn.fetch_described(sql)
        handlers = []
        for label, code in description:
            try:
                handlers.append((label, dialect.get_column_type_by_native_code(code)))
            except UnknownTypeError as e:
                raise UnknownTypeError(
                    f"Unknown data type {code!r} of column '{label}'"
                ) from e
        result = []
        for row in rows:
            values = dict(zip([label for label, _ in description], row, strict=True))
            result.append({label: handler.get(values, label) for label, handler in handlers})
        return result

    async def generate_id(self, type: str, transaction: Transaction | None = None) -> int:
        """Return the next id for an entity type.

        Uses the mapping's sequence if the dialect supports sequences, else
        the table's maximum id plus one (1 for an empty table). With a
        transaction, ids inserted earlier in it are taken into account.
        """
        entity_type = self.get_entity_type(type)
        mapping = entity_type.mapping
        dialect = await self.determine_dialect()
        if mapping.has_id_sequence() and dialect.has_sequence_support():
            sql = dialect.sql_next_sequence_value(mapping.id_sequence_name)
            offset = 0
            read_only = False
        else:
            sql = entity_type.statements(dialect).max_id
            offset = 1
            read_only = transaction is None
        async with self._unit_of_work(transaction, read_only=read_only) as conn:
            description, rows = await conn.fetch_described(sql)
        label, code = description[0]
        value = dialect.get_column_type_by_native_code(code).get({label: rows[0][0]}, label)
        return int(value or 0) + offset

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def insert(self, entity: Entity, transaction: Transaction | None = None) -> int:
        """Insert entity as a new row and make its key persistent.

        Properties whose value is None and whose mapping declares a default
        are left out of the statement, so the column default applies.

        Raises:
            KeyAlreadyPersistentError: If the entity already has an id.
        """
        key = entity.key
        if key.is_persistent:
            raise KeyAlreadyPersistentError(f"Cannot insert {key}: it is already persistent")
        mapping = self.get_entity_mapping(key.type)
        dialect = await self.determine_dialect()
        next_id = await self.generate_id(key.type, transaction)

        columns = [dialect.quote(mapping.id_column_name)]
        params: list[Any] = [None]
        dialect.get_column_type("integer").bind(params, 0, next_id)
        for _, column, prop in mapping.columns():
            value = entity.get(column)
            if value is None and prop.default is not None:
                continue
            columns.append(dialect.quote(column))
            params.append(None)
            dialect.get_column_type(prop.type).bind(params, len(params) - 1, value)
        sql = (
            f"INSERT INTO {dialect.quote(mapping.table_name)} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' * len(columns))})"
        )

        logger.debug("Inserting %s: %s", key, sql)
        async with self._unit_of_work(transaction) as conn:
            result = await conn.execute(sql, params)
        entity.key = key.persist(next_id)
        if transaction is not None:
            transaction.inserted.append(entity.key)
        return result

    async def update(self, entity: Entity, transaction: Transaction | None = None) -> int:
        """Write every mapped property of entity to its row.

        Raises:
            TransientKeyError: If the entity was never inserted.
        """
        key = entity.key
        if key.is_transient:
            raise TransientKeyError(f"Cannot update {key}: it was never inserted")
        entity_type = self.get_entity_type(key.type)
        dialect = await self.determine_dialect()
        prefix = entity_type.statements(dialect).update
        if prefix is None:
            logger.debug("Nothing to update for %s", key)
            return 0

        params: list[Any] = []
        for _, column, prop in entity_type.mapping.columns():
            params.append(None)
            dialect.get_column_type(prop.type).bind(params, len(params) - 1, entity.get(column))
        sql = f"{prefix}{int(key.id)}"

        logger.debug("Updating %s: %s", key, sql)
        async with self._unit_of_work(transaction) as conn:
            result = await conn.execute(sql, params)
        if transaction is not None:
            transaction.updated.append(key)
        return result

    async def remove(self, key: Key, transaction: Transaction | None = None) -> int:
        """Delete the row of key.

        Raises:
            TransientKeyError: If the key has no id.
        """
        if key.is_transient:
            raise TransientKeyError(f"Cannot remove {key}: it was never inserted")
        entity_type = self.get_entity_type(key.type)
        dialect = await self.determine_dialect()
        sql = entity_type.statements(dialect).delete
        params: list[Any] = [None]
        dialect.get_column_type("integer").bind(params, 0, key.id)

        logger.debug("Deleting %s: %s", key, sql)
        async with self._unit_of_work(transaction) as conn:
            result = await conn.execute(sql, params)
        if transaction is not None:
            transaction.deleted.append(key)
        return result

    async def save(
        self,
        properties: dict[str, Any],
        entity: Entity,
        transaction: Transaction | None = None,
    ) -> int:
        """Copy properties into entity and insert or update it.

        Storable values are saved first (in the same transaction) and stored
        as their keys. Placeholders that were never loaded are not saved again.

        Raises:
            MappingError: If a property name is not mapped.
        """
        mapping = self.get_entity_mapping(entity.key.type)
        for name, value in properties.items():
            column = mapping.column_for(name)
            if isinstance(value, Storable):
                if value.is_loaded:
                    await value.save(transaction)
                value = value.key
            entity[column] = value
        if entity.key.is_persistent:
            return await self.update(entity, transaction)
        return await self.insert(entity, transaction)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def load_entity(
        self, type: str, id: int, transaction: Transaction | None = None
    ) -> Entity | None:
        """Load the row with this id, or None if there is none.

        Mapped columns are converted with their logical types; reference
        columns become Keys of the referenced type.

        Raises:
            MultipleRowsError: If more than one row has this id.
        """
        entity_type = self.get_entity_type(type)
        mapping = entity_type.mapping
        dialect = await self.determine_dialect()
        sql = f"{entity_type.statements(dialect).select}{int(id)}"

        logger.debug("Retrieving entity %s#%s: %s", type, id, sql)
        async with self._unit_of_work(transaction, read_only=transaction is None) as conn:
            rows = await conn.fetch_all(sql)
        if len(rows) > 1:
            raise MultipleRowsError(mapping.table_name, len(rows), id)
        if not rows:
            return None

        row = rows[0]
        entity = Entity(Key(type, int(id)))
        for _, column, prop in mapping.columns():
            value = dialect.get_column_type(prop.type).get(row, column)
            if prop.is_reference and value is not None:
                value = Key(prop.entity, value)
            entity[column] = value
        return entity

    async def is_entity_existing(self, type: str, id: int) -> bool:
        """True if the table of type has a row with this id.

        Raises:
            MultipleRowsError: If more than one row has this id.
        """
        entity_type = self.get_entity_type(type)
        dialect = await self.determine_dialect()
        sql = f"{entity_type.statements(dialect).exists}{int(id)}"

        logger.debug("Checking entity %s#%s: %s", type, id, sql)
        async with self._unit_of_work(read_only=True) as conn:
            rows = await conn.fetch_all(sql)
        if len(rows) > 1:
            raise MultipleRowsError(entity_type.mapping.table_name, len(rows), id)
        return len(rows) == 1

    def get_properties(self, entity: Entity) -> dict[str, Any]:
        """Return property name -> value, with references as lazy Storables."""
        props = {}
        for name, column, _ in self.get_entity_mapping(entity.key.type).columns():
            value = entity.get(column)
            if isinstance(value, Key):
                value = self.create(value.type, value)
            props[name] = value
        return props

    async def get_by_id(self, type: str, id: int, aggressive: bool = False) -> Storable | None:
        """Return an instance bound to the row with this id, or None.

        Only the row's existence is checked; properties are loaded on first
        access, or right away when aggressive is True.
        """
        if not await self.is_entity_existing(type, id):
            return None
        storable = self.create(type, Key(type, int(id)))
        if aggressive:
            await storable.load()
        return storable

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def create(self, type: str, key: Key, entity: Entity | None = None) -> Storable:
        """Create an instance of a registered type bound to key."""
        return self.get_entity_type(type).create_instance(key, entity)

    def get_key(self, type: str, arg: Any) -> Key | None:
        """Return the key of a Key, Entity or Storable argument, else None."""
        if isinstance(arg, Key):
            return arg
        if isinstance(arg, (Entity, Storable)):
            return arg.key
        return None

    async def get_entity(self, type: str, arg: Any) -> Entity | None:
        """Return an Entity for arg.

        A Key is loaded from the database, an Entity is returned as is and a
        plain dict becomes a transient Entity of type.
        """
        if isinstance(arg, Key):
            return await self.load_entity(arg.type, arg.id)
        if isinstance(arg, Entity):
            return arg
        if isinstance(arg, dict):
            return Entity(Key.transient(type), arg)
        return None

    def get_id(self, key: Any) -> int | None:
        """Return the id stored in key.

        Raises:
            TypeError: If key is not a Key.
        """
        if isinstance(key, Key):
            return key.id
        raise TypeError(f"Not a key: {key!r}")


__all__ = ["Store"]
