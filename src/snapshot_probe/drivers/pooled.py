"""Pooled driver backed by aiosqlitepool."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite
from aiosqlitepool import SQLiteConnectionPool

from ..exceptions import StoreConnectionError
from ..models import ConnectionMode
from ..sql import PING
from .base import StoreDriver

logger = logging.getLogger(__name__)

DEFAULT_ACQUISITION_TIMEOUT = 5.0


class PooledDriver(StoreDriver):
    """Driver routing every operation through a bounded connection pool.

    With ``max_connections=1`` the pool keeps exactly one connection alive,
    which is what lets a private in-memory store survive between
    acquisitions.
    """

    mode = ConnectionMode.POOLED

    def __init__(
        self,
        target: str,
        *,
        uri: bool = False,
        max_connections: int = 1,
        acquisition_timeout: float = DEFAULT_ACQUISITION_TIMEOUT,
    ) -> None:
        super().__init__(target, uri=uri)
        if max_connections < 1:
            msg = f"max_connections must be at least 1, got {max_connections}"
            raise ValueError(msg)
        self.max_connections = max_connections
        self.acquisition_timeout = acquisition_timeout
        self._pool: SQLiteConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    async def _connection_factory(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.target, uri=self.uri)
        logger.debug("Pool connection created: %s", self.target)
        return conn

    async def connect(self) -> None:
        """Create the pool and establish its first connection eagerly.

        The pool opens connections lazily, so a ping is issued here to
        surface connection failures at connect time.
        """
        if self._pool is not None:
            return
        pool = SQLiteConnectionPool(
            self._connection_factory,
            pool_size=self.max_connections,
            acquisition_timeout=self.acquisition_timeout,
        )
        try:
            async with pool.connection() as conn:
                async with conn.execute(PING) as cursor:
                    await cursor.fetchone()
        except Exception as e:
            await pool.close()
            raise StoreConnectionError(self.target, str(e)) from e
        self._pool = pool
        logger.debug(
            "Pool created: %s (max_connections=%d)", self.target, self.max_connections
        )

    async def close(self) -> None:
        """Close the pool and every connection it holds."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.debug("Pool dropped: %s", self.target)

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        self._ensure_open()
        assert self._pool is not None
        async with self._pool.connection() as conn:
            yield conn
