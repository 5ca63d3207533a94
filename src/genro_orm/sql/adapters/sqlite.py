# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQLite async adapter using aiosqlite with per-request connections."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import aiosqlite

from .base import DbAdapter, IsolationLevel


class SqliteAdapter(DbAdapter):
    """SQLite async adapter with per-request connections.

    Each acquire() opens a new connection, release() closes it. At most
    max_connections are open at once; further acquire() calls wait.

    Connections are opened in driver autocommit mode (isolation_level=None).
    Disabling autocommit issues an explicit BEGIN, so transaction boundaries
    are always visible in the SQL sent to SQLite. Read-only mode maps to
    ``PRAGMA query_only``.

    Note:
        ":memory:" gives every connection its own empty database. Use a
        file path whenever more than one connection must see the same data.
    """

    def __init__(self, db_path: str, max_connections: int = 10, timeout: float = 5.0):
        super().__init__(max_connections)
        self.db_path = db_path or ":memory:"
        self.timeout = timeout
        self._slots = asyncio.Semaphore(max_connections)

    @staticmethod
    def _storage_class(rows: Sequence[Sequence[Any]], index: int) -> str:
        """Storage class of the first non-NULL value in a result column."""
        for row in rows:
            value = row[index]
            if value is None:
                continue
            if isinstance(value, int):
                return "INTEGER"
            if isinstance(value, float):
                return "REAL"
            if isinstance(value, str):
                return "TEXT"
            return "BLOB"
        return "NULL"

    # -------------------------------------------------------------------------
    # Pool
    # -------------------------------------------------------------------------

    async def acquire(self) -> aiosqlite.Connection:
        """Open new connection for request."""
        await self._slots.acquire()
        try:
            return await aiosqlite.connect(
                self.db_path, timeout=self.timeout, isolation_level=None
            )
        except BaseException:
            self._slots.release()
            raise

    async def release(self, conn: aiosqlite.Connection) -> None:
        """Close connection."""
        try:
            await conn.close()
        finally:
            self._slots.release()

    async def shutdown(self) -> None:
        """No-op for SQLite (no pool to close)."""
        pass

    # -------------------------------------------------------------------------
    # Connection configuration
    # -------------------------------------------------------------------------

    async def set_autocommit(self, conn: aiosqlite.Connection, autocommit: bool) -> None:
        """Enable autocommit (committing an open transaction) or BEGIN one."""
        if autocommit:
            if conn.in_transaction:
                await conn.commit()
        elif not conn.in_transaction:
            await conn.execute("BEGIN")

    async def set_read_only(self, conn: aiosqlite.Connection, read_only: bool) -> None:
        """Toggle PRAGMA query_only."""
        await conn.execute(f"PRAGMA query_only = {'ON' if read_only else 'OFF'}")

    async def set_isolation_level(self, conn: aiosqlite.Connection, level: IsolationLevel) -> None:
        """SQLite transactions are serializable; only dirty reads can be enabled."""
        enabled = 1 if level is IsolationLevel.READ_UNCOMMITTED else 0
        await conn.execute(f"PRAGMA read_uncommitted = {enabled}")

    async def commit(self, conn: aiosqlite.Connection) -> None:
        """Commit transaction on connection."""
        await conn.commit()

    async def rollback(self, conn: aiosqlite.Connection) -> None:
        """Rollback transaction on connection."""
        await conn.rollback()

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    async def execute(
        self, conn: aiosqlite.Connection, query: str, params: Sequence[Any] | None = None
    ) -> int:
        """Execute statement, return affected row count."""
        async with conn.execute(query, tuple(params or ())) as cursor:
            return cursor.rowcount

    async def fetch_all(
        self, conn: aiosqlite.Connection, query: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query, return all rows as list of dicts."""
        async with conn.execute(query, tuple(params or ())) as cursor:
            rows = await cursor.fetchall()
            cols = [c[0] for c in cursor.description]
            return [dict(zip(cols, row, strict=True)) for row in rows]

    async def fetch_described(
        self, conn: aiosqlite.Connection, query: str, params: Sequence[Any] | None = None
    ) -> tuple[list[tuple[str, Any]], list[tuple[Any, ...]]]:
        """Execute query, return column labels with storage classes, and rows."""
        async with conn.execute(query, tuple(params or ())) as cursor:
            rows = [tuple(row) for row in await cursor.fetchall()]
            labels = [c[0] for c in cursor.description or ()]
        description = [(label, self._storage_class(rows, i)) for i, label in enumerate(labels)]
        return description, rows

    async def server_info(self, conn: aiosqlite.Connection) -> tuple[str, int]:
        """Return ("SQLite", major version) from sqlite_version()."""
        async with conn.execute("SELECT sqlite_version()") as cursor:
            row = await cursor.fetchone()
        return "SQLite", int(str(row[0]).split(".")[0])


__all__ = ["SqliteAdapter"]
