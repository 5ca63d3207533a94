# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Entity rows, storable instances and registered entity types.

Three layers describe one persisted object:

    Entity: The raw row, a dict of column name -> value carrying its Key.
        Reference columns hold the referenced entity's Key.
    Storable: What application code works with. Exposes mapped properties
        by name, loads its row lazily and saves/removes itself through the
        store.
    EntityType: Returned by Store.define_entity(). Creates new Storables,
        looks existing ones up by id and caches the SQL compiled from the
        mapping.

Example:
    Working with a registered type::

        Person = await store.define_entity("Person", {
            "table": "person",
            "properties": {"name": {"type": "string"}},
        })
        ann = Person(name="Ann")
        await ann.save()             # INSERT, ann.key becomes Person#1

        person = await Person.get(1) # existence check only
        await person.get("name")     # first access loads the row
        person.name                  # "Ann", loaded now
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import IntegrityError, NotLoadedError, TransientKeyError
from .key import Key

if TYPE_CHECKING:
    from .mapping import Mapping
    from .sql.dialects.base import Dialect
    from .store import Store
    from .transaction import Transaction


class Entity(dict):
    """Row values keyed by column name.

    Attributes:
        key: Key of the row. Replaced by the persistent key on insert.
    """

    def __init__(self, key: Key, values: dict[str, Any] | None = None):
        super().__init__(values or {})
        self.key = key

    def __repr__(self) -> str:
        return f"<Entity {self.key} {dict.__repr__(self)}>"


# -----------------------------------------------------------------------------
# Compiled statements
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Statements:
    """SQL fragments of one mapping that do not depend on the row.

    Statements ending in ``= `` take the id as an integer literal.
    """

    delete: str
    update: str | None
    select: str
    exists: str
    max_id: str


def compile_statements(mapping: Mapping, dialect: Dialect) -> Statements:
    """Compile the row-independent statements of a mapping for a dialect."""
    q = dialect.quote
    table = q(mapping.table_name)
    id_column = q(mapping.id_column_name)
    assignments = ", ".join(f"{q(column)} = ?" for _, column, _ in mapping.columns())
    return Statements(
        delete=f"DELETE FROM {table} WHERE {id_column} = ?",
        update=f"UPDATE {table} SET {assignments} WHERE {id_column} = " if assignments else None,
        select=f"SELECT * FROM {table} WHERE {id_column} = ",
        exists=f"SELECT {id_column} FROM {table} WHERE {id_column} = ",
        max_id=f"SELECT MAX({id_column}) FROM {table}",
    )


# -----------------------------------------------------------------------------
# Storable
# -----------------------------------------------------------------------------


class Storable:
    """An instance of a registered entity type.

    Transient instances hold the properties they were created with. Persistent
    instances obtained from EntityType.get() start as placeholders bound to
    their key: properties become available after ``await load()`` (or
    ``await get(name)``). Synchronous property access before that raises
    NotLoadedError.
    """

    __slots__ = ("_entity_type", "_key", "_entity", "_props")

    def __init__(
        self,
        entity_type: EntityType,
        key: Key,
        entity: Entity | None = None,
        properties: dict[str, Any] | None = None,
    ):
        object.__setattr__(self, "_entity_type", entity_type)
        object.__setattr__(self, "_key", key)
        object.__setattr__(self, "_entity", entity)
        object.__setattr__(self, "_props", properties)

    def __repr__(self) -> str:
        state = "" if self.is_loaded else " (not loaded)"
        return f"<{self._entity_type.name} {self._key}{state}>"

    @property
    def key(self) -> Key:
        return self._key

    @property
    def entity_type(self) -> EntityType:
        return self._entity_type

    @property
    def is_loaded(self) -> bool:
        return self._props is not None

    def _require_loaded(self, name: str) -> dict[str, Any]:
        if self._props is None:
            raise NotLoadedError(
                f"{self._key} is not loaded: await load() or get('{name}') first"
            )
        return self._props

    # -------------------------------------------------------------------------
    # Property access
    # -------------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name not in self._entity_type.mapping.properties:
            raise AttributeError(f"{self._entity_type.name!r} object has no attribute {name!r}")
        return self._require_loaded(name).get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name not in self._entity_type.mapping.properties:
            raise AttributeError(f"{self._entity_type.name!r} has no mapped property {name!r}")
        self._require_loaded(name)[name] = value

    def __getitem__(self, name: str) -> Any:
        self._entity_type.mapping.column_for(name)
        return self._require_loaded(name).get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._entity_type.mapping.column_for(name)
        self._require_loaded(name)[name] = value

    def properties(self) -> dict[str, Any]:
        """Return a copy of the loaded properties (name -> value)."""
        return dict(self._require_loaded("properties"))

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def load(self, transaction: Transaction | None = None) -> Storable:
        """Load the row of a persistent placeholder. No-op once loaded.

        Raises:
            IntegrityError: If the row no longer exists.
        """
        if self._props is not None:
            return self
        store = self._entity_type.store
        entity = await store.load_entity(self._key.type, self._key.id, transaction)
        if entity is None:
            raise IntegrityError(f"{self._key} no longer exists")
        object.__setattr__(self, "_entity", entity)
        object.__setattr__(self, "_props", store.get_properties(entity))
        return self

    async def get(self, name: str) -> Any:
        """Return a property value, loading the row on first access."""
        self._entity_type.mapping.column_for(name)
        await self.load()
        return self._props.get(name)

    async def save(self, transaction: Transaction | None = None) -> int:
        """Insert (transient) or update (persistent) this instance.

        Returns:
            Affected row count.
        """
        await self.load(transaction)
        if self._entity is None:
            object.__setattr__(self, "_entity", Entity(self._key))
        result = await self._entity_type.store.save(self._props, self._entity, transaction)
        object.__setattr__(self, "_key", self._entity.key)
        return result

    async def remove(self, transaction: Transaction | None = None) -> int:
        """Delete the row of this instance.

        Raises:
            TransientKeyError: If the instance was never saved.
        """
        if self._key.is_transient:
            raise TransientKeyError(f"Cannot remove {self._key}: it was never saved")
        return await self._entity_type.store.remove(self._key, transaction)


# -----------------------------------------------------------------------------
# EntityType
# -----------------------------------------------------------------------------


class EntityType:
    """A registered entity type: constructor, lookup and compiled SQL.

    Attributes:
        store: Store the type is registered with.
        name: Entity type name.
        mapping: Validated, immutable mapping.
    """

    def __init__(self, store: Store, name: str, mapping: Mapping):
        self.store = store
        self.name = name
        self.mapping = mapping
        self._statements: dict[str, Statements] = {}

    def __repr__(self) -> str:
        return f"<EntityType {self.name} table={self.mapping.table_name!r}>"

    def __call__(self, **properties: Any) -> Storable:
        """Create a new transient instance from property values.

        Raises:
            MappingError: If a property name is not mapped.
        """
        for name in properties:
            self.mapping.column_for(name)
        return Storable(self, Key.transient(self.name), properties=dict(properties))

    def create_instance(self, key: Key, entity: Entity | None = None) -> Storable:
        """Create an instance bound to key, loaded from entity when given."""
        if entity is None:
            return Storable(self, key)
        return Storable(self, key, entity, self.store.get_properties(entity))

    async def get(self, id: int, aggressive: bool = False) -> Storable | None:
        """Return the instance with this id, or None if no such row exists."""
        return await self.store.get_by_id(self.name, id, aggressive)

    def statements(self, dialect: Dialect) -> Statements:
        """Return the compiled statements for dialect, compiling on first use."""
        compiled = self._statements.get(dialect.name)
        if compiled is None:
            compiled = self._statements[dialect.name] = compile_statements(self.mapping, dialect)
        return compiled


__all__ = ["Entity", "Statements", "compile_statements", "Storable", "EntityType"]
