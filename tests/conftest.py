"""Pytest configuration for the candlesync test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from candlesync.core.data.cache import CandleCache, ThreadSafeInMemoryCache
from candlesync.core.data.repositories import CandleRepository
from candlesync.core.data.storage import CandleDatabase


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--candlesync-run-integration",
        action="store_true",
        default=False,
        help="Run candlesync integration tests that require external services.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the integration marker for candlesync tests."""

    config.addinivalue_line(
        "markers",
        "integration: marks candlesync tests requiring a live Redis or other external services",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--candlesync-run-integration"):
        return

    skip_integration = pytest.mark.skip(
        reason="integration tests require --candlesync-run-integration",
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def memory_cache() -> CandleCache:
    return CandleCache(ThreadSafeInMemoryCache(max_size=100))


@pytest.fixture
def database() -> Iterator[CandleDatabase]:
    db = CandleDatabase(":memory:")
    yield db
    db.close()


@pytest.fixture
def repository(database: CandleDatabase) -> CandleRepository:
    return CandleRepository(database)
