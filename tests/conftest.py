"""Root conftest.py for pytest configuration.

Isolates the module-level transition callback registry between tests.

Provides --run-slow flag to opt in to slow tests (skipped by default).
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from snapshot_probe import observer


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow", action="store_true", default=False, help="Run tests marked @pytest.mark.slow"
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="needs --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def isolated_transition_callbacks() -> Iterator[None]:
    """Restore the global callback registry after every test."""
    saved = list(observer._callbacks)
    yield
    observer._callbacks[:] = saved
