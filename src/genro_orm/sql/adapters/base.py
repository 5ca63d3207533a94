# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Base adapter class: connection pool contract for async database drivers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import Any


class IsolationLevel(Enum):
    """Transaction isolation levels understood by all adapters."""

    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


class DbAdapter(ABC):
    """Abstract base class for async database adapters.

    An adapter is the connection pool the store borrows from:
    - Connection management (acquire, release, shutdown)
    - Connection configuration (autocommit, read-only, isolation level)
    - Transaction control (commit, rollback on connection)
    - Statement execution (execute, fetch_all, fetch_described)
    - Server identification (server_info) for dialect selection

    Statements use ``?`` positional placeholders; subclasses convert them
    to the driver's parameter style.

    Connection model:
    - acquire(): Returns a connection, waiting while max_connections are out
    - release(conn): Returns connection to pool or closes it
    - shutdown(): Closes connection pool (application shutdown only)
    """

    def __init__(self, max_connections: int = 10):
        self.max_connections = max_connections

    # -------------------------------------------------------------------------
    # Pool
    # -------------------------------------------------------------------------

    @abstractmethod
    async def acquire(self) -> Any:
        """Acquire a connection.

        For pooled adapters: gets connection from pool.
        For file-based adapters: opens new connection.

        Returns:
            Database connection object.
        """
        ...

    @abstractmethod
    async def release(self, conn: Any) -> None:
        """Release a connection.

        For pooled adapters: returns connection to pool.
        For file-based adapters: closes connection.
        """
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Close connection pool (application shutdown)."""
        ...

    # -------------------------------------------------------------------------
    # Connection configuration
    # -------------------------------------------------------------------------

    @abstractmethod
    async def set_autocommit(self, conn: Any, autocommit: bool) -> None:
        """Enable or disable autocommit. Enabling it commits a pending transaction."""
        ...

    @abstractmethod
    async def set_read_only(self, conn: Any, read_only: bool) -> None:
        """Make the connection refuse (or accept again) data changes."""
        ...

    @abstractmethod
    async def set_isolation_level(self, conn: Any, level: IsolationLevel) -> None:
        """Set isolation level for transactions started on the connection."""
        ...

    @abstractmethod
    async def commit(self, conn: Any) -> None:
        """Commit transaction on connection."""
        ...

    @abstractmethod
    async def rollback(self, conn: Any) -> None:
        """Rollback transaction on connection."""
        ...

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    @abstractmethod
    async def execute(self, conn: Any, query: str, params: Sequence[Any] | None = None) -> int:
        """Execute statement on connection, return affected row count."""
        ...

    @abstractmethod
    async def fetch_all(
        self, conn: Any, query: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query on connection, return all rows as list of dicts."""
        ...

    @abstractmethod
    async def fetch_described(
        self, conn: Any, query: str, params: Sequence[Any] | None = None
    ) -> tuple[list[tuple[str, Any]], list[tuple[Any, ...]]]:
        """Execute query, return ([(column label, native type code)], rows)."""
        ...

    @abstractmethod
    async def server_info(self, conn: Any) -> tuple[str, int]:
        """Return (database product name, major version) of the server."""
        ...


__all__ = ["DbAdapter", "IsolationLevel"]
