"""Persist a live store into a standalone file with VACUUM INTO.

An existing destination is rejected unless it is a zero-byte placeholder,
which SQLite itself accepts. Nothing is cleaned up after a failed export.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .drivers import StoreDriver
from .exceptions import ExportError, ExportTargetExistsError

logger = logging.getLogger(__name__)


def check_destination(destination: Path) -> None:
    """Validate that ``destination`` can receive a new store.

    Raises:
        ExportTargetExistsError: If it exists as a directory or non-empty file.
        ExportError: If its parent directory is missing.
    """
    if destination.is_dir() or (destination.exists() and destination.stat().st_size > 0):
        raise ExportTargetExistsError(str(destination))
    if not destination.parent.is_dir():
        raise ExportError(str(destination), f"directory {destination.parent} does not exist")


async def export_store(driver: StoreDriver, destination: Path) -> Path:
    """Export the store behind ``driver`` to ``destination`` and release it.

    The driver is closed only after the file is confirmed on disk; on
    failure the caller still owns it and must close it.

    Returns:
        The destination path.

    Raises:
        ExportTargetExistsError: If the destination already holds data.
        ExportError: If SQLite fails the copy or no file appears.
    """
    check_destination(destination)

    logger.info("Vacuuming into new db: %s", destination)
    await driver.export_to(destination)

    exists = destination.exists()
    logger.debug("Checking if new db exists: %s (exists: %s)", destination, exists)
    if not exists:
        raise ExportError(str(destination), "no file was written")

    await driver.close()
    logger.info("Dropped %s handle after export", driver.mode.value)
    return destination
