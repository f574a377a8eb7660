"""Exclusive single-connection driver."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from ..exceptions import StoreConnectionError
from ..models import ConnectionMode
from .base import StoreDriver

logger = logging.getLogger(__name__)


class DirectDriver(StoreDriver):
    """Driver holding one dedicated aiosqlite connection.

    aiosqlite runs the standard library's synchronous sqlite3 connection on
    its own thread, so every call goes straight to that one connection with
    no pooling in between.
    """

    mode = ConnectionMode.EXCLUSIVE

    def __init__(self, target: str, *, uri: bool = False) -> None:
        super().__init__(target, uri=uri)
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        """Open the connection."""
        if self._conn is not None:
            return
        try:
            self._conn = await aiosqlite.connect(self.target, uri=self.uri)
        except Exception as e:
            raise StoreConnectionError(self.target, str(e)) from e
        logger.debug("Connection created: %s", self.target)

    async def close(self) -> None:
        """Close the connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.debug("Connection dropped: %s", self.target)

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        self._ensure_open()
        assert self._conn is not None
        yield self._conn
