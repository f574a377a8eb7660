"""Row and catalog checks for live and exported stores."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .drivers import StoreDriver, create_driver, read_only_target
from .exceptions import VerificationError
from .models import ConnectionMode, Row
from .sql import SEED_TABLE, SELECT_ALL, TABLE_CATALOG

logger = logging.getLogger(__name__)

STAGE_PRE_EXPORT = "pre-export"
STAGE_SHARED_PEER = "shared-peer"
STAGE_POST_EXPORT = "post-export"


def decode_rows(raw_rows: Sequence[Sequence[Any]], stage: str) -> list[Row]:
    """Decode raw result tuples into Rows, preserving result order.

    Raises:
        VerificationError: If a row is not an (int, str) pair.
    """
    rows: list[Row] = []
    for raw in raw_rows:
        if len(raw) != 2 or not isinstance(raw[0], int) or not isinstance(raw[1], str):
            raise VerificationError(stage, "shape", detail=f"undecodable row {tuple(raw)!r}")
        rows.append(Row(id=raw[0], name=raw[1]))
    return rows


def verify_rows(actual: Sequence[Row], expected: Sequence[Row], stage: str) -> None:
    """Assert ``actual`` equals ``expected`` element for element.

    Raises:
        VerificationError: With mismatch "count", "order" (same rows in a
            different sequence) or "content".
    """
    actual_list = list(actual)
    expected_list = list(expected)
    if len(actual_list) != len(expected_list):
        raise VerificationError(stage, "count", len(expected_list), len(actual_list))
    if actual_list == expected_list:
        return
    if Counter(actual_list) == Counter(expected_list):
        raise VerificationError(stage, "order", expected_list, actual_list)
    raise VerificationError(stage, "content", expected_list, actual_list)


def verify_catalog(tables: Sequence[str], stage: str, required: str = SEED_TABLE) -> None:
    """Assert the table catalog is non-empty and contains ``required``."""
    if not tables or required not in tables:
        raise VerificationError(stage, "catalog", [required], list(tables))


async def read_rows(driver: StoreDriver, stage: str) -> list[Row]:
    """Full-table scan of the seeded table, decoded into Rows."""
    return decode_rows(await driver.query_all(SELECT_ALL), stage)


async def read_catalog(driver: StoreDriver) -> list[str]:
    """Return every table name in the store."""
    return [str(row[0]) for row in await driver.query_all(TABLE_CATALOG)]


async def verify_live(
    driver: StoreDriver,
    expected: Sequence[Row],
    stage: str = STAGE_PRE_EXPORT,
) -> list[Row]:
    """Read the live store and check it holds exactly ``expected``."""
    rows = await read_rows(driver, stage)
    verify_rows(rows, expected, stage)
    logger.debug("%s: %d rows match", stage, len(rows))
    return rows


async def verify_persisted(
    mode: ConnectionMode,
    path: Path,
    expected: Sequence[Row],
    *,
    max_connections: int = 1,
    acquisition_timeout: float = 5.0,
) -> tuple[list[Row], list[str]]:
    """Open the exported file independently and compare it with ``expected``.

    The file is opened read-only through a fresh driver of the same mode,
    so verification can neither create nor modify it.

    Returns:
        The rows and table catalog read from the file.

    Raises:
        VerificationError: If the file is missing, the catalog lacks the
            seeded table, or the rows differ from ``expected``.
    """
    exists = path.exists()
    logger.debug("Checking exported file %s (exists: %s)", path, exists)
    if not exists:
        raise VerificationError(STAGE_POST_EXPORT, "missing", detail=f"{path} does not exist")

    target, uri = read_only_target(path)
    driver = create_driver(
        mode,
        target,
        uri=uri,
        max_connections=max_connections,
        acquisition_timeout=acquisition_timeout,
    )
    async with driver:
        catalog = await read_catalog(driver)
        verify_catalog(catalog, STAGE_POST_EXPORT)
        rows = await read_rows(driver, STAGE_POST_EXPORT)
    verify_rows(rows, expected, STAGE_POST_EXPORT)
    return rows, catalog
