"""Shared fixtures for integration tests against real SQLite stores."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from snapshot_probe.drivers import StoreDriver, create_driver, memory_target
from snapshot_probe.models import CacheMode, ConnectionMode
from snapshot_probe.workflow import seed_store


@pytest.fixture
def export_path(tmp_path: Path) -> Path:
    """Absent export destination inside an existing directory."""
    parent = tmp_path / "export"
    parent.mkdir()
    return parent / "new.db"


@pytest.fixture(params=list(ConnectionMode), ids=lambda mode: mode.value)
def mode(request: pytest.FixtureRequest) -> ConnectionMode:
    """Each access strategy in turn."""
    return request.param


@pytest.fixture
async def seeded_driver(mode: ConnectionMode) -> AsyncIterator[StoreDriver]:
    """Shared-cache in-memory store holding the seed rows."""
    target, uri = memory_target(CacheMode.SHARED)
    driver = create_driver(mode, target, uri=uri)
    async with driver:
        await seed_store(driver)
        yield driver


