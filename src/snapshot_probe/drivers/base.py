"""Store driver abstraction shared by the exclusive and pooled strategies.

A driver owns a live handle to one SQLite target (an in-memory store or a
file) and exposes the handful of operations the export workflow needs.
Subclasses only decide how a connection is obtained; statement execution,
error translation and logging live here.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from pathlib import Path
from typing import Any

import aiosqlite

from ..exceptions import ExportError, StoreClosedError, StoreExecutionError
from ..models import CacheMode, ConnectionMode
from ..sql import VACUUM_INTO

logger = logging.getLogger(__name__)

MEMORY_TARGET = ":memory:"
MEMORY_NAME_PREFIX = "snapshot-probe"


def memory_target(cache: CacheMode, name: str | None = None) -> tuple[str, bool]:
    """Return the (target, uri) pair that opens an in-memory store.

    Args:
        cache: PRIVATE opens an anonymous store visible to one connection.
            SHARED opens a named store that every connection using the same
            name observes.
        name: Store name for SHARED mode. A unique name is generated when
            omitted so concurrent runs never collide.

    Returns:
        The database argument for sqlite3.connect and whether it is a URI.
    """
    if cache is CacheMode.PRIVATE:
        return MEMORY_TARGET, False
    store_name = name or f"{MEMORY_NAME_PREFIX}-{uuid.uuid4().hex}"
    return f"file:{store_name}?mode=memory&cache=shared", True


def read_only_target(path: Path) -> tuple[str, bool]:
    """Return the (target, uri) pair that opens ``path`` without write access.

    SQLite will not create a missing file through a ``mode=ro`` URI.
    """
    return f"{path.resolve().as_uri()}?mode=ro", True


class StoreDriver(ABC):
    """A live handle to one SQLite target.

    Usable as an async context manager; ``close`` is idempotent and any
    operation on a closed driver raises StoreClosedError.
    """

    mode: ConnectionMode

    def __init__(self, target: str, *, uri: bool = False) -> None:
        self.target = target
        self.uri = uri

    async def __aenter__(self) -> StoreDriver:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Return whether the driver currently holds a live handle."""

    @abstractmethod
    async def connect(self) -> None:
        """Establish the handle. Calling it on an open driver is a no-op.

        Raises:
            StoreConnectionError: If SQLite or the pool cannot open the target.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release every connection held by the driver."""

    @abstractmethod
    def _connection(self) -> AbstractAsyncContextManager[aiosqlite.Connection]:
        """Lend a live connection for the duration of one operation."""

    def _ensure_open(self) -> None:
        if not self.is_open:
            msg = f"{self.mode.value} handle to {self.target} is not open"
            raise StoreClosedError(msg)

    async def execute_batch(self, sql: str) -> None:
        """Run a multi-statement script and commit it.

        Raises:
            StoreExecutionError: If any statement fails.
        """
        self._ensure_open()
        async with self._connection() as conn:
            try:
                await conn.executescript(sql)
                await conn.commit()
            except sqlite3.Error as e:
                msg = f"Batch failed on {self.target}: {e}"
                raise StoreExecutionError(msg) from e
        logger.debug("Batch executed on %s", self.target)

    async def query_all(
        self,
        sql: str,
        params: tuple[Any, ...] = (),
    ) -> list[tuple[Any, ...]]:
        """Run a query and return every row in result order.

        Raises:
            StoreExecutionError: If the query fails.
        """
        self._ensure_open()
        async with self._connection() as conn:
            try:
                async with conn.execute(sql, params) as cursor:
                    rows = await cursor.fetchall()
            except sqlite3.Error as e:
                msg = f"Query failed on {self.target}: {e}"
                raise StoreExecutionError(msg) from e
        logger.debug("Selected %d rows from %s", len(rows), self.target)
        return [tuple(row) for row in rows]

    async def export_to(self, destination: Path) -> None:
        """Copy the whole live store into a new file at ``destination``.

        Raises:
            ExportError: If SQLite rejects or fails the copy.
        """
        self._ensure_open()
        async with self._connection() as conn:
            try:
                # VACUUM refuses to run inside a transaction or while an
                # earlier statement on this connection is still unreset.
                await conn.commit()
                async with conn.execute(VACUUM_INTO, (str(destination),)):
                    pass
            except sqlite3.Error as e:
                raise ExportError(str(destination), str(e)) from e
        logger.debug("Vacuumed %s into %s", self.target, destination)
