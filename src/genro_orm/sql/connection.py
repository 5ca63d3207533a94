# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Connection: one pooled driver connection bound to its adapter.

The wrapper is what store, transactions and schema utilities pass around.
Closing it is the single cleanup point: any transaction still open on the
connection is rolled back, then the connection goes back to the pool.

Example:
    Borrowing a connection::

        conn = Connection(adapter, await adapter.acquire())
        async with conn:
            await conn.set_autocommit(True)
            await conn.execute('DELETE FROM "person" WHERE "id" = ?', [1])
        # connection returned to the pool
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ..errors import ConnectionClosedError

if TYPE_CHECKING:
    from .adapters.base import DbAdapter, IsolationLevel


class Connection:
    """A driver connection checked out from a DbAdapter.

    Attributes:
        adapter: Adapter (pool) the connection belongs to.
        raw: Underlying driver connection.
    """

    def __init__(self, adapter: DbAdapter, raw: Any):
        self.adapter = adapter
        self.raw = raw
        self._autocommit: bool | None = None
        self._closed = False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Connection {type(self.adapter).__name__} {state}>"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def autocommit(self) -> bool | None:
        """Last autocommit mode set through this wrapper, None if never set."""
        return self._autocommit

    def _check(self) -> Any:
        if self._closed:
            raise ConnectionClosedError("Connection already returned to the pool")
        return self.raw

    # -------------------------------------------------------------------------
    # Configuration and transaction control
    # -------------------------------------------------------------------------

    async def set_autocommit(self, autocommit: bool) -> None:
        await self.adapter.set_autocommit(self._check(), autocommit)
        self._autocommit = autocommit

    async def set_read_only(self, read_only: bool) -> None:
        await self.adapter.set_read_only(self._check(), read_only)

    async def set_isolation_level(self, level: IsolationLevel) -> None:
        await self.adapter.set_isolation_level(self._check(), level)

    async def commit(self) -> None:
        await self.adapter.commit(self._check())

    async def rollback(self) -> None:
        await self.adapter.rollback(self._check())

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    async def execute(self, query: str, params: Sequence[Any] | None = None) -> int:
        """Execute statement, return affected row count."""
        return await self.adapter.execute(self._check(), query, params)

    async def fetch_all(
        self, query: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query, return all rows as list of dicts."""
        return await self.adapter.fetch_all(self._check(), query, params)

    async def fetch_described(
        self, query: str, params: Sequence[Any] | None = None
    ) -> tuple[list[tuple[str, Any]], list[tuple[Any, ...]]]:
        """Execute query, return ([(label, native code)], rows)."""
        return await self.adapter.fetch_described(self._check(), query, params)

    async def server_info(self) -> tuple[str, int]:
        """Return (database product name, major version)."""
        return await self.adapter.server_info(self._check())

    # -------------------------------------------------------------------------
    # Release
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Roll back any open transaction and return the connection to the pool.

        Idempotent: closing an already closed connection does nothing.
        """
        if self._closed:
            return
        self._closed = True
        try:
            if self._autocommit is not True:
                await self.adapter.rollback(self.raw)
        finally:
            await self.adapter.release(self.raw)

    async def __aenter__(self) -> Connection:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()


__all__ = ["Connection"]
