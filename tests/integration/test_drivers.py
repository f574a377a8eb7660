"""Driver lifecycle tests.

Tests that verify both store drivers against real in-memory stores:
- Context manager entry/exit
- Seeding and full-table scans
- Shared versus private cache visibility
- Error translation for connection and execution failures
- Use after release
- Export after earlier operations on the same handle
"""

from __future__ import annotations

from pathlib import Path

import pytest

from snapshot_probe.drivers import (
    DirectDriver,
    PooledDriver,
    StoreDriver,
    create_driver,
    memory_target,
    read_only_target,
)
from snapshot_probe.exceptions import StoreClosedError, StoreConnectionError, StoreExecutionError
from snapshot_probe.models import CacheMode, ConnectionMode
from snapshot_probe.sql import SELECT_ALL, TABLE_CATALOG
from snapshot_probe.workflow import seed_store

from .helpers import read_file_rows


class TestDriverFactory:
    """create_driver() picks the implementation by mode."""

    def test_exclusive_builds_direct_driver(self) -> None:
        driver = create_driver(ConnectionMode.EXCLUSIVE, ":memory:")
        assert isinstance(driver, DirectDriver)
        assert driver.is_open is False

    def test_pooled_builds_bounded_pool_driver(self) -> None:
        driver = create_driver(ConnectionMode.POOLED, ":memory:", max_connections=1)
        assert isinstance(driver, PooledDriver)
        assert driver.max_connections == 1

    def test_pool_requires_a_connection(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            PooledDriver(":memory:", max_connections=0)

    def test_private_target_is_plain_memory(self) -> None:
        assert memory_target(CacheMode.PRIVATE) == (":memory:", False)

    def test_shared_targets_are_unique_uris(self) -> None:
        first, first_uri = memory_target(CacheMode.SHARED)
        second, _ = memory_target(CacheMode.SHARED)
        assert first_uri is True
        assert "cache=shared" in first
        assert first != second

    def test_named_shared_target(self) -> None:
        target, _ = memory_target(CacheMode.SHARED, "probe")
        assert target == "file:probe?mode=memory&cache=shared"


class TestDriverLifecycle:
    """Connection lifecycle for each mode."""

    async def test_context_manager_opens_and_closes(self, mode: ConnectionMode) -> None:
        driver = create_driver(mode, ":memory:")

        async with driver:
            assert driver.is_open is True
            assert await driver.query_all("select 1") == [(1,)]

        assert driver.is_open is False

    async def test_connect_twice_is_noop(self, mode: ConnectionMode) -> None:
        driver = create_driver(mode, ":memory:")
        async with driver:
            await driver.execute_batch("create table t (x integer);")
            await driver.connect()
            assert await driver.query_all("select count(*) from t") == [(0,)]

    async def test_close_is_idempotent(self, mode: ConnectionMode) -> None:
        driver = create_driver(mode, ":memory:")
        await driver.connect()
        await driver.close()
        await driver.close()
        assert driver.is_open is False

    async def test_use_after_close_raises(self, mode: ConnectionMode) -> None:
        driver = create_driver(mode, ":memory:")
        async with driver:
            pass

        with pytest.raises(StoreClosedError, match="not open"):
            await driver.query_all(SELECT_ALL)

    async def test_use_before_connect_raises(self, mode: ConnectionMode) -> None:
        with pytest.raises(StoreClosedError):
            await create_driver(mode, ":memory:").execute_batch("select 1;")


class TestSeeding:
    """Seeding and scanning the in-memory store."""

    async def test_seed_yields_two_rows_in_order(self, seeded_driver: StoreDriver) -> None:
        rows = await seeded_driver.query_all(SELECT_ALL)
        assert rows == [(1, "hello"), (2, "world")]

    async def test_catalog_lists_seed_table(self, seeded_driver: StoreDriver) -> None:
        assert await seeded_driver.query_all(TABLE_CATALOG) == [("test",)]

    async def test_private_pool_keeps_data_between_acquisitions(self) -> None:
        """A one-connection pool over a private store behaves like one connection."""
        async with PooledDriver(":memory:", max_connections=1) as driver:
            await seed_store(driver)
            assert len(await driver.query_all(SELECT_ALL)) == 2
            assert len(await driver.query_all(SELECT_ALL)) == 2

    async def test_malformed_batch_raises_execution_error(self, mode: ConnectionMode) -> None:
        async with create_driver(mode, ":memory:") as driver:
            with pytest.raises(StoreExecutionError, match="Batch failed") as exc_info:
                await driver.execute_batch("create table broken (")
        assert exc_info.value.__cause__ is not None

    async def test_bad_query_raises_execution_error(self, mode: ConnectionMode) -> None:
        async with create_driver(mode, ":memory:") as driver:
            with pytest.raises(StoreExecutionError, match="Query failed"):
                await driver.query_all("select * from missing_table")


class TestCacheModes:
    """Shared versus private in-memory visibility."""

    async def test_shared_peer_sees_same_rows(self, mode: ConnectionMode) -> None:
        """Scenario C: a second handle on the same shared store sees the seed."""
        target, uri = memory_target(CacheMode.SHARED)
        async with create_driver(mode, target, uri=uri, max_connections=1) as owner:
            await seed_store(owner)
            async with create_driver(mode, target, uri=uri, max_connections=1) as peer:
                assert await peer.query_all(SELECT_ALL) == [(1, "hello"), (2, "world")]

    async def test_private_peer_sees_nothing(self, mode: ConnectionMode) -> None:
        async with create_driver(mode, ":memory:") as owner:
            await seed_store(owner)
            async with create_driver(mode, ":memory:") as peer:
                assert await peer.query_all(TABLE_CATALOG) == []

    async def test_shared_store_unreachable_after_release(self, mode: ConnectionMode) -> None:
        """Once every handle is closed the in-memory data is gone."""
        target, uri = memory_target(CacheMode.SHARED)
        async with create_driver(mode, target, uri=uri) as owner:
            await seed_store(owner)

        async with create_driver(mode, target, uri=uri) as reopened:
            assert await reopened.query_all(TABLE_CATALOG) == []


class TestConnectionFailures:
    """Connection errors are translated and chained."""

    async def test_missing_read_only_file_fails_to_connect(
        self, mode: ConnectionMode, tmp_path: Path
    ) -> None:
        target, uri = read_only_target(tmp_path / "absent.db")
        driver = create_driver(mode, target, uri=uri, acquisition_timeout=1.0)

        with pytest.raises(StoreConnectionError) as exc_info:
            await driver.connect()

        assert exc_info.value.__cause__ is not None
        assert driver.is_open is False
        assert not (tmp_path / "absent.db").exists()


class TestExportTo:
    """export_to() after earlier operations on the same store."""

    async def test_export_after_seed_and_queries(
        self, mode: ConnectionMode, tmp_path: Path
    ) -> None:
        """Every pooled operation re-acquires the connection before the copy."""
        destination = tmp_path / "new.db"
        target, uri = memory_target(CacheMode.SHARED)

        async with create_driver(mode, target, uri=uri) as driver:
            await seed_store(driver)
            assert await driver.query_all(SELECT_ALL) == [(1, "hello"), (2, "world")]
            assert await driver.query_all(TABLE_CATALOG) == [("test",)]
            await driver.export_to(destination)

        assert read_file_rows(destination) == [(1, "hello"), (2, "world")]

    async def test_private_pool_exports_after_queries(self, tmp_path: Path) -> None:
        destination = tmp_path / "new.db"

        async with PooledDriver(":memory:", max_connections=1) as driver:
            await seed_store(driver)
            await driver.query_all(SELECT_ALL)
            await driver.export_to(destination)

        assert read_file_rows(destination) == [(1, "hello"), (2, "world")]
