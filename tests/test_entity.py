# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for Entity, Storable and EntityType."""

from __future__ import annotations

import pytest

from genro_orm.entity import Entity, Statements, compile_statements
from genro_orm.errors import IntegrityError, MappingError, NotLoadedError, TransientKeyError
from genro_orm.key import Key
from genro_orm.mapping import Mapping
from genro_orm.sql.dialects import PostgresDialect, SqliteDialect


class TestEntity:
    """Tests for the Entity row dict."""

    def test_is_dict_with_key(self):
        """An Entity behaves as a dict and carries its key."""
        entity = Entity(Key("Person", 1), {"name": "Ann"})
        assert entity == {"name": "Ann"}
        assert entity.key == Key("Person", 1)
        assert "Person#1" in repr(entity)

    def test_values_are_copied(self):
        """The initial values dict is not shared."""
        values = {"name": "Ann"}
        entity = Entity(Key.transient("Person"), values)
        entity["name"] = "Bob"
        assert values == {"name": "Ann"}


class TestCompileStatements:
    """Tests for the SQL compiled from a mapping."""

    def test_person_statements(self, person_mapping):
        """Statements quote identifiers and end where the id literal goes."""
        statements = compile_statements(Mapping.from_spec(person_mapping), SqliteDialect())
        assert statements == Statements(
            delete='DELETE FROM "person" WHERE "id" = ?',
            update='UPDATE "person" SET "name" = ?, "age" = ? WHERE "id" = ',
            select='SELECT * FROM "person" WHERE "id" = ',
            exists='SELECT "id" FROM "person" WHERE "id" = ',
            max_id='SELECT MAX("id") FROM "person"',
        )

    def test_no_properties_no_update(self):
        """A mapping without properties has no update statement."""
        statements = compile_statements(Mapping.from_spec({"table": "t"}), SqliteDialect())
        assert statements.update is None

    async def test_cached_per_dialect(self, store, person_type):
        """EntityType compiles once per dialect name."""
        sqlite = SqliteDialect()
        first = person_type.statements(sqlite)
        assert person_type.statements(SqliteDialect()) is first
        assert person_type.statements(PostgresDialect()) is not first


class TestEntityType:
    """Tests for EntityType construction and lookup."""

    async def test_call_creates_transient_instance(self, person_type):
        """Calling the type builds a loaded, transient instance."""
        ann = person_type(name="Ann")
        assert ann.key.is_transient
        assert ann.is_loaded
        assert ann.name == "Ann"
        assert ann.age is None

    async def test_call_rejects_unknown_property(self, person_type):
        """Unknown property names fail at construction."""
        with pytest.raises(MappingError):
            person_type(email="ann@example.com")

    async def test_get_missing(self, person_type):
        """get() of an unknown id returns None."""
        assert await person_type.get(1) is None

    async def test_create_instance_from_entity(self, store, person_type):
        """An instance built from an entity is loaded right away."""
        entity = Entity(Key("Person", 3), {"name": "Ann", "age": 30})
        instance = person_type.create_instance(entity.key, entity)
        assert instance.is_loaded
        assert instance.properties() == {"name": "Ann", "age": 30}


class TestStorable:
    """Tests for lazy loading, property access and persistence."""

    async def test_lazy_placeholder(self, store, person_type):
        """get_by_id() checks existence only; get() loads on first access."""
        await person_type(name="Ann", age=30).save()

        person = await store.get_by_id("Person", 1)

        assert person.key == Key("Person", 1)
        assert not person.is_loaded
        with pytest.raises(NotLoadedError):
            _ = person.name
        with pytest.raises(NotLoadedError):
            person["age"] = 5
        assert await person.get("name") == "Ann"
        assert person.is_loaded
        assert person.age == 30
        assert person["name"] == "Ann"

    async def test_aggressive_loads_immediately(self, person_type):
        """aggressive=True returns a loaded instance."""
        await person_type(name="Ann").save()
        person = await person_type.get(1, aggressive=True)
        assert person.is_loaded
        assert person.properties() == {"name": "Ann", "age": None}

    async def test_unmapped_names(self, person_type):
        """Unmapped attributes and items are rejected."""
        ann = person_type(name="Ann")
        with pytest.raises(AttributeError):
            _ = ann.email
        with pytest.raises(AttributeError):
            ann.email = "x"
        with pytest.raises(MappingError):
            _ = ann["email"]
        with pytest.raises(MappingError):
            await ann.get("email")

    async def test_save_then_update(self, store, person_type):
        """The first save inserts, later saves update the same row."""
        ann = person_type(name="Ann")
        await ann.save()
        assert ann.key == Key("Person", 1)

        ann.age = 31
        ann["name"] = "Anna"
        await ann.save()

        assert ann.key == Key("Person", 1)
        assert await store.load_entity("Person", 1) == {"name": "Anna", "age": 31}

    async def test_save_unloaded_placeholder_loads_first(self, store, person_type):
        """Saving a placeholder does not overwrite its row with nothing."""
        await person_type(name="Ann", age=30).save()
        person = await person_type.get(1)
        await person.save()
        assert await store.load_entity("Person", 1) == {"name": "Ann", "age": 30}

    async def test_remove(self, person_type):
        """remove() deletes the row; a transient instance cannot be removed."""
        ann = person_type(name="Ann")
        with pytest.raises(TransientKeyError):
            await ann.remove()
        await ann.save()
        assert await ann.remove() == 1
        assert await person_type.get(ann.key.id) is None

    async def test_load_vanished_row(self, store, person_type):
        """Loading a placeholder whose row was deleted is an integrity error."""
        await person_type(name="Ann").save()
        person = await person_type.get(1)
        await store.remove(Key("Person", 1))
        with pytest.raises(IntegrityError, match="no longer exists"):
            await person.load()

    async def test_properties_is_a_copy(self, person_type):
        """Changing the returned dict does not change the instance."""
        ann = person_type(name="Ann")
        props = ann.properties()
        props["name"] = "Bob"
        assert ann.name == "Ann"

    async def test_repr(self, store, person_type):
        """repr() shows type, key and load state."""
        await person_type(name="Ann").save()
        person = await person_type.get(1)
        assert repr(person) == "<Person Person#1 (not loaded)>"
        await person.load()
        assert repr(person) == "<Person Person#1>"
