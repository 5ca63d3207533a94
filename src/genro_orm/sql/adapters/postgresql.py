# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""PostgreSQL async adapter using psycopg3 with connection pooling.

Uses connection-per-request model: acquire() gets from pool,
release() returns to pool. Each request gets isolated transaction.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from .base import DbAdapter, IsolationLevel


class PostgresAdapter(DbAdapter):
    """PostgreSQL async adapter with connection pooling.

    Uses ``?`` placeholders converted to ``%s``. acquire() gets connection
    from pool (waiting while max_connections are out), release() returns it.

    Pool is initialized lazily on first acquire().
    """

    def __init__(self, dsn: str, max_connections: int = 10, connect_timeout: float = 10.0):
        super().__init__(max_connections)
        self.dsn = dsn
        self.connect_timeout = connect_timeout
        self._pool: Any = None

        # Verify psycopg is available at init time
        try:
            import psycopg  # noqa: F401
        except ImportError as e:
            raise ImportError(
                "PostgreSQL support requires psycopg. "
                "Install with: pip install genro-orm[postgresql]"
            ) from e

    def _convert_placeholders(self, query: str, params: Sequence[Any] | None) -> str:
        """Convert ? placeholders to %s for psycopg (only when params are bound)."""
        if params is None:
            return query
        return re.sub(r"\?", "%s", query.replace("%", "%%"))

    async def _ensure_pool(self) -> None:
        """Initialize connection pool if not already open."""
        if self._pool is not None:
            return

        import asyncio

        from psycopg_pool import AsyncConnectionPool

        self._pool = AsyncConnectionPool(
            self.dsn,
            min_size=1,
            max_size=self.max_connections,
            open=False,
        )
        try:
            await asyncio.wait_for(
                self._pool.open(wait=True, timeout=self.connect_timeout),
                timeout=self.connect_timeout + 1,
            )
        except asyncio.TimeoutError:
            await self._pool.close()
            self._pool = None
            raise TimeoutError(
                f"PostgreSQL connection timed out after {self.connect_timeout}s. "
                "Check credentials and server availability."
            ) from None
        except Exception as e:
            await self._pool.close()
            self._pool = None
            raise ConnectionError(f"PostgreSQL connection failed: {e}") from e

    # -------------------------------------------------------------------------
    # Pool
    # -------------------------------------------------------------------------

    async def acquire(self) -> Any:
        """Acquire connection from pool."""
        await self._ensure_pool()
        return await self._pool.getconn()

    async def release(self, conn: Any) -> None:
        """Return connection to pool."""
        if self._pool:
            await self._pool.putconn(conn)

    async def shutdown(self) -> None:
        """Close connection pool (application shutdown)."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    # -------------------------------------------------------------------------
    # Connection configuration
    # -------------------------------------------------------------------------

    async def set_autocommit(self, conn: Any, autocommit: bool) -> None:
        """Enable or disable autocommit. Enabling it commits a pending transaction."""
        if autocommit and not conn.autocommit:
            await conn.commit()
        await conn.set_autocommit(autocommit)

    async def set_read_only(self, conn: Any, read_only: bool) -> None:
        """Set read-only mode for the transactions started on the connection."""
        await conn.set_read_only(read_only)

    async def set_isolation_level(self, conn: Any, level: IsolationLevel) -> None:
        """Set isolation level for the transactions started on the connection."""
        from psycopg import IsolationLevel as PgIsolationLevel

        await conn.set_isolation_level(PgIsolationLevel[level.name])

    async def commit(self, conn: Any) -> None:
        """Commit transaction on connection."""
        await conn.commit()

    async def rollback(self, conn: Any) -> None:
        """Rollback transaction on connection."""
        await conn.rollback()

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    async def execute(self, conn: Any, query: str, params: Sequence[Any] | None = None) -> int:
        """Execute statement, return affected row count."""
        query = self._convert_placeholders(query, params)
        async with conn.cursor() as cur:
            await cur.execute(query, params)
            return cur.rowcount

    async def fetch_all(
        self, conn: Any, query: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query, return all rows as list of dicts."""
        from psycopg.rows import dict_row

        query = self._convert_placeholders(query, params)
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, params)
            return await cur.fetchall()

    async def fetch_described(
        self, conn: Any, query: str, params: Sequence[Any] | None = None
    ) -> tuple[list[tuple[str, Any]], list[tuple[Any, ...]]]:
        """Execute query, return column labels with type OIDs, and rows."""
        query = self._convert_placeholders(query, params)
        async with conn.cursor() as cur:
            await cur.execute(query, params)
            rows = await cur.fetchall()
            description = [(col.name, col.type_code) for col in cur.description or ()]
        return description, rows

    async def server_info(self, conn: Any) -> tuple[str, int]:
        """Return ("PostgreSQL", major version) from the connection info."""
        return "PostgreSQL", conn.info.server_version // 10000


__all__ = ["PostgresAdapter"]
