# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Explicit transactions owning one connection.

A Transaction is opened by Store.create_transaction() (or the
Store.transaction() context manager) and keeps its connection checked out
until commit() or rollback(). Store operations called with the transaction
run on that connection and record the keys they touched.

There is no timeout: a transaction that is never ended holds its connection.
Calls sharing one transaction must not run concurrently.

Example:
    Grouping writes::

        async with store.transaction() as tx:
            await store.save({"name": "Ann"}, Entity(Key.transient("Person")), tx)
            await store.remove(Key("Person", 7), tx)
        # COMMIT on success, ROLLBACK on exception
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from .errors import TransactionClosedError
from .sql.adapters.base import IsolationLevel

if TYPE_CHECKING:
    from .key import Key
    from .sql.connection import Connection
    from .store import Store

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled back"


class Transaction:
    """A unit of work on one dedicated connection.

    Attributes:
        store: Store that created the transaction.
        state: Current TransactionState.
        inserted: Persistent keys of rows inserted in this transaction.
        updated: Keys of rows updated in this transaction.
        deleted: Keys of rows deleted in this transaction.
    """

    def __init__(self, store: Store, connection: Connection):
        self.store = store
        self.state = TransactionState.OPEN
        self.inserted: list[Key] = []
        self.updated: list[Key] = []
        self.deleted: list[Key] = []
        self._connection = connection

    def __repr__(self) -> str:
        return f"<Transaction {self.state.value}>"

    @classmethod
    async def begin(cls, store: Store, connection: Connection) -> Transaction:
        """Configure connection (serializable, writable, no autocommit) and wrap it.

        The connection is closed if configuring it fails.
        """
        try:
            await connection.set_isolation_level(IsolationLevel.SERIALIZABLE)
            await connection.set_read_only(False)
            await connection.set_autocommit(False)
        except BaseException:
            await connection.close()
            raise
        logger.debug("Transaction started")
        return cls(store, connection)

    @property
    def is_open(self) -> bool:
        return self.state is TransactionState.OPEN

    def ensure_open(self) -> None:
        """Raise TransactionClosedError unless the transaction is open."""
        if self.state is not TransactionState.OPEN:
            raise TransactionClosedError(f"Transaction already {self.state.value}")

    @property
    def connection(self) -> Connection:
        """Connection owned by the transaction."""
        self.ensure_open()
        return self._connection

    async def commit(self) -> None:
        """Commit and release the connection.

        If the commit fails the transaction ends as rolled back, the connection
        is still released and the driver error propagates.
        """
        self.ensure_open()
        try:
            await self._connection.commit()
        except BaseException:
            self.state = TransactionState.ROLLED_BACK
            raise
        else:
            self.state = TransactionState.COMMITTED
            logger.debug(
                "Transaction committed: %d inserted, %d updated, %d deleted",
                len(self.inserted),
                len(self.updated),
                len(self.deleted),
            )
        finally:
            await self._connection.close()

    async def rollback(self) -> None:
        """Roll back and release the connection."""
        self.ensure_open()
        self.state = TransactionState.ROLLED_BACK
        try:
            await self._connection.rollback()
        finally:
            await self._connection.close()
        logger.debug("Transaction rolled back")


__all__ = ["Transaction", "TransactionState"]
