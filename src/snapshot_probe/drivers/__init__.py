"""Store drivers for the exclusive and pooled access strategies."""

from __future__ import annotations

from ..models import ConnectionMode
from .base import StoreDriver, memory_target, read_only_target
from .direct import DirectDriver
from .pooled import DEFAULT_ACQUISITION_TIMEOUT, PooledDriver


def create_driver(
    mode: ConnectionMode,
    target: str,
    *,
    uri: bool = False,
    max_connections: int = 1,
    acquisition_timeout: float = DEFAULT_ACQUISITION_TIMEOUT,
) -> StoreDriver:
    """Build an unconnected driver for ``mode``.

    Args:
        mode: EXCLUSIVE for a dedicated connection, POOLED for a pool.
        target: Database argument passed to sqlite3.connect.
        uri: Whether ``target`` is a SQLite URI.
        max_connections: Pool bound; ignored for EXCLUSIVE.
        acquisition_timeout: Seconds to wait for a pooled connection.
    """
    if mode is ConnectionMode.EXCLUSIVE:
        return DirectDriver(target, uri=uri)
    return PooledDriver(
        target,
        uri=uri,
        max_connections=max_connections,
        acquisition_timeout=acquisition_timeout,
    )


__all__ = [
    "DirectDriver",
    "PooledDriver",
    "StoreDriver",
    "create_driver",
    "memory_target",
    "read_only_target",
]
