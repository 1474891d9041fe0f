from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from flowview.cache.chunk_store import VirtualDataStore
from flowview.cache.registry import DatasetRegistry
from flowview.config import ViewOptions


def _factory(key, options):
    return VirtualDataStore.from_sequence(
        list(range(50)),
        chunk_size=options.chunk_size,
        max_cached_chunks=options.max_cached_chunks,
    )


def test_create_uses_options_for_the_store() -> None:
    registry = DatasetRegistry(_factory, ViewOptions(chunk_size=10, max_cached_chunks=2))

    session = registry.create(("logs", "2024-01-01"))

    assert session.store.chunk_size == 10
    assert session.store.max_cached_chunks == 2
    assert ("logs", "2024-01-01") in registry
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_invalidate_clears_store_and_aggregator() -> None:
    registry = DatasetRegistry(_factory, ViewOptions(chunk_size=10))
    session = registry.create("q")
    await session.store.get_range(0, 30)
    session.aggregator.add([1, 2, 3])
    session.aggregator.sum(float)
    teardown = MagicMock()
    session.on_teardown(teardown)

    assert registry.invalidate("q") is True

    assert session.store.cached_chunk_count == 0
    assert session.aggregator.count() == 0
    assert session.aggregator.cache_size == 0
    assert session.generation == 1
    teardown.assert_called_once_with()
    assert registry.get("q") is session


def test_create_replaces_and_disposes_previous_session() -> None:
    registry = DatasetRegistry(_factory)
    first = registry.create("q")
    teardown = MagicMock()
    first.on_teardown(teardown)

    second = registry.create("q")

    assert first.disposed
    assert second is not first
    assert registry.get("q") is second
    teardown.assert_called_once_with()


def test_dispose_runs_teardown_once() -> None:
    registry = DatasetRegistry(_factory)
    session = registry.get_or_create("q")
    assert registry.get_or_create("q") is session
    teardown = MagicMock()
    session.on_teardown(teardown)

    assert registry.dispose("q") is True
    session.dispose()

    teardown.assert_called_once_with()
    assert registry.dispose("q") is False
    assert registry.invalidate("q") is False


def test_dispose_all() -> None:
    registry = DatasetRegistry(_factory)
    sessions = [registry.create(key) for key in ("a", "b", "c")]

    registry.dispose_all()

    assert len(registry) == 0
    assert all(session.disposed for session in sessions)
    assert list(registry) == []
