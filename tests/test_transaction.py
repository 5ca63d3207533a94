# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for Transaction lifecycle and Store.transaction()."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from genro_orm.entity import Entity
from genro_orm.errors import TransactionClosedError
from genro_orm.key import Key
from genro_orm.sql.adapters import IsolationLevel
from genro_orm.transaction import Transaction, TransactionState


def _mock_connection() -> MagicMock:
    conn = MagicMock()
    for name in ("set_isolation_level", "set_read_only", "set_autocommit", "commit", "rollback", "close"):
        setattr(conn, name, AsyncMock())
    return conn


class TestBegin:
    """Tests for Transaction.begin()."""

    async def test_configures_connection_in_order(self):
        """Serializable isolation, writable, then autocommit off."""
        conn = _mock_connection()
        calls = []
        conn.set_isolation_level.side_effect = lambda level: calls.append(("isolation", level))
        conn.set_read_only.side_effect = lambda value: calls.append(("read_only", value))
        conn.set_autocommit.side_effect = lambda value: calls.append(("autocommit", value))

        tx = await Transaction.begin(MagicMock(), conn)

        assert calls == [
            ("isolation", IsolationLevel.SERIALIZABLE),
            ("read_only", False),
            ("autocommit", False),
        ]
        assert tx.is_open
        assert tx.connection is conn

    async def test_failure_closes_connection(self):
        """A connection that cannot be configured is released."""
        conn = _mock_connection()
        conn.set_autocommit.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await Transaction.begin(MagicMock(), conn)
        conn.close.assert_awaited_once()

    async def test_holds_one_connection(self, store, person_type):
        """An open transaction keeps exactly one connection checked out."""
        tx = await store.create_transaction()
        assert store.adapter.open == 1
        await tx.rollback()
        assert store.adapter.open == 0


class TestCommitRollback:
    """Tests for commit() and rollback()."""

    async def test_commit_makes_writes_visible(self, store, person_type):
        """Committed inserts are seen by other connections."""
        tx = await store.create_transaction()
        entity = Entity(Key.transient("Person"))
        await store.save({"name": "Ann"}, entity, tx)

        assert await store.load_entity("Person", 1) is None
        assert (await store.load_entity("Person", 1, tx))["name"] == "Ann"

        await tx.commit()
        assert tx.state is TransactionState.COMMITTED
        assert await store.load_entity("Person", 1) == {"name": "Ann", "age": None}
        assert store.adapter.open == 0

    async def test_rollback_discards_writes(self, store, person_type):
        """Rolled back inserts leave no row."""
        tx = await store.create_transaction()
        await store.save({"name": "Ann"}, Entity(Key.transient("Person")), tx)
        await tx.rollback()

        assert tx.state is TransactionState.ROLLED_BACK
        assert await store.load_entity("Person", 1) is None
        assert store.adapter.open == 0

    async def test_records_touched_keys(self, store, person_type):
        """inserted, updated and deleted list the keys of each write."""
        tx = await store.create_transaction()
        ann = Entity(Key.transient("Person"))
        bob = Entity(Key.transient("Person"))
        await store.save({"name": "Ann"}, ann, tx)
        await store.save({"name": "Bob"}, bob, tx)
        await store.save({"age": 40}, ann, tx)
        await store.remove(bob.key, tx)

        assert tx.inserted == [Key("Person", 1), Key("Person", 2)]
        assert tx.updated == [Key("Person", 1)]
        assert tx.deleted == [Key("Person", 2)]
        await tx.commit()

    async def test_commit_failure_ends_rolled_back(self):
        """A failing commit leaves the transaction rolled back and released."""
        conn = _mock_connection()
        conn.commit.side_effect = RuntimeError("disk full")
        tx = await Transaction.begin(MagicMock(), conn)

        with pytest.raises(RuntimeError, match="disk full"):
            await tx.commit()
        assert tx.state is TransactionState.ROLLED_BACK
        conn.close.assert_awaited_once()

    async def test_rollback_releases_on_error(self):
        """The connection is released even when rollback fails."""
        conn = _mock_connection()
        conn.rollback.side_effect = RuntimeError("gone")
        tx = await Transaction.begin(MagicMock(), conn)

        with pytest.raises(RuntimeError):
            await tx.rollback()
        assert tx.state is TransactionState.ROLLED_BACK
        conn.close.assert_awaited_once()


class TestClosedTransaction:
    """A finished transaction refuses further use."""

    async def test_commit_twice(self, store):
        """Committing again raises TransactionClosedError."""
        tx = await store.create_transaction()
        await tx.commit()
        with pytest.raises(TransactionClosedError, match="already committed"):
            await tx.commit()
        with pytest.raises(TransactionClosedError):
            await tx.rollback()

    async def test_use_after_rollback(self, store, person_type):
        """Store operations with a rolled back transaction fail before any SQL."""
        tx = await store.create_transaction()
        await tx.rollback()
        with pytest.raises(TransactionClosedError, match="already rolled back"):
            await store.save({"name": "Ann"}, Entity(Key.transient("Person")), tx)
        with pytest.raises(TransactionClosedError):
            _ = tx.connection
        assert store.adapter.open == 0


class TestTransactionContext:
    """Tests for the Store.transaction() context manager."""

    async def test_commits_on_success(self, store, person_type):
        """A clean exit commits."""
        async with store.transaction() as tx:
            await store.save({"name": "Ann"}, Entity(Key.transient("Person")), tx)
        assert tx.state is TransactionState.COMMITTED
        assert await store.is_entity_existing("Person", 1)

    async def test_rolls_back_on_error(self, store, person_type):
        """An exception rolls back and propagates."""
        with pytest.raises(ValueError):
            async with store.transaction() as tx:
                await store.save({"name": "Ann"}, Entity(Key.transient("Person")), tx)
                raise ValueError("abort")
        assert tx.state is TransactionState.ROLLED_BACK
        assert not await store.is_entity_existing("Person", 1)
        assert store.adapter.open == 0

    async def test_explicit_end_inside_block(self, store, person_type):
        """A transaction ended inside the block is left alone on exit."""
        async with store.transaction() as tx:
            await tx.rollback()
        assert tx.state is TransactionState.ROLLED_BACK

    async def test_storable_save_in_transaction(self, store, person_type):
        """Storable.save() joins the given transaction."""
        async with store.transaction() as tx:
            ann = person_type(name="Ann")
            await ann.save(tx)
            assert tx.inserted == [ann.key]
        assert (await person_type.get(ann.key.id)) is not None
