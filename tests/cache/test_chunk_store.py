from __future__ import annotations

import asyncio

import pytest

from flowview.cache.chunk_store import VirtualDataStore
from flowview.errors import ConfigurationError, FetchError, NetworkError, ServerError
from flowview.io.page_fetcher import SequencePageSource


class _Loader:
    """Chunk loader over ``range(total)`` with per-chunk gates and failures."""

    def __init__(self, total: int = 100, *, fail: tuple[int, ...] = (), gated: bool = False) -> None:
        self.total = total
        self.fail = set(fail)
        self.calls: list[int] = []
        self.gates: dict[int, asyncio.Event] = {}
        self.gated = gated

    async def __call__(self, chunk_index: int, chunk_size: int):
        self.calls.append(chunk_index)
        if self.gated:
            gate = self.gates.setdefault(chunk_index, asyncio.Event())
            await gate.wait()
        if chunk_index in self.fail:
            raise ServerError(f"chunk {chunk_index} failed", status=503)
        start = chunk_index * chunk_size
        return list(range(start, min(start + chunk_size, self.total)))

    def release(self, *indices: int) -> None:
        for index in indices:
            self.gates.setdefault(index, asyncio.Event()).set()


def test_rejects_invalid_options() -> None:
    with pytest.raises(ConfigurationError):
        VirtualDataStore(_Loader(), chunk_size=0)
    with pytest.raises(ConfigurationError):
        VirtualDataStore(_Loader(), max_cached_chunks=0)


@pytest.mark.asyncio
async def test_get_range_spans_chunks_in_order() -> None:
    loader = _Loader(100)
    store = VirtualDataStore(loader, chunk_size=10, total_size=100)

    result = await store.get_range(5, 25)

    assert result.ok
    assert list(result.items) == list(range(5, 25))
    assert sorted(loader.calls) == [0, 1, 2]


@pytest.mark.asyncio
async def test_out_of_order_completion_keeps_index_order() -> None:
    loader = _Loader(30, gated=True)
    store = VirtualDataStore(loader, chunk_size=10, total_size=30)

    pending = asyncio.ensure_future(store.get_range(0, 30))
    await asyncio.sleep(0)
    loader.release(2)
    await asyncio.sleep(0)
    loader.release(1)
    await asyncio.sleep(0)
    loader.release(0)
    result = await pending

    assert list(result.items) == list(range(30))


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_fetch() -> None:
    loader = _Loader(100, gated=True)
    store = VirtualDataStore(loader, chunk_size=10)

    first = asyncio.ensure_future(store.get_chunk(3))
    second = asyncio.ensure_future(store.get_chunk(3))
    await asyncio.sleep(0)
    assert store.is_pending(3)

    loader.release(3)
    chunk_a, chunk_b = await asyncio.gather(first, second)

    assert loader.calls == [3]
    assert chunk_a is chunk_b
    assert store.stats.misses == 1
    assert not store.is_pending(3)


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_fetch() -> None:
    loader = _Loader(100, gated=True)
    store = VirtualDataStore(loader, chunk_size=10)

    first = asyncio.ensure_future(store.get_chunk(0))
    second = asyncio.ensure_future(store.get_chunk(0))
    await asyncio.sleep(0)
    first.cancel()
    loader.release(0)

    chunk = await second
    assert list(chunk.items) == list(range(10))
    assert store.cached_chunk_indices == [0]


@pytest.mark.asyncio
async def test_lru_eviction_drops_least_recently_accessed() -> None:
    now = [0.0]
    loader = _Loader(100)
    store = VirtualDataStore(loader, chunk_size=10, max_cached_chunks=3, clock=lambda: now[0])

    for index in (0, 1, 2):
        now[0] += 1
        await store.get_chunk(index)
    now[0] += 1
    await store.get_chunk(0)
    now[0] += 1
    await store.get_chunk(3)

    assert store.cached_chunk_indices == [2, 0, 3]
    assert store.cached_chunk_count == 3
    assert store.stats.evictions == 1
    assert store.entry(3).last_access_time == 5.0


@pytest.mark.asyncio
async def test_cache_never_exceeds_budget_for_wide_ranges() -> None:
    loader = _Loader(1000)
    store = VirtualDataStore(loader, chunk_size=10, max_cached_chunks=4, total_size=1000)

    result = await store.get_range(0, 200)

    assert len(result.items) == 200
    assert store.cached_chunk_count == 4


@pytest.mark.asyncio
async def test_partial_failure_returns_items_and_failure_list() -> None:
    loader = _Loader(40, fail=(1,))
    store = VirtualDataStore(loader, chunk_size=10, total_size=40)

    result = await store.get_range(5, 35)

    assert not result.ok
    assert result.failed_chunks == (1,)
    assert result.failed_ranges == ((10, 20),)
    assert isinstance(result.error, ServerError)
    assert list(result.items) == list(range(5, 10)) + list(range(20, 35))
    assert 1 not in store.cached_chunk_indices
    assert store.stats.failures == 1


@pytest.mark.asyncio
async def test_failed_chunk_is_refetched_on_next_request() -> None:
    loader = _Loader(20, fail=(0,))
    store = VirtualDataStore(loader, chunk_size=10)

    with pytest.raises(FetchError):
        await store.get_chunk(0)
    loader.fail.clear()

    chunk = await store.get_chunk(0)
    assert list(chunk.items) == list(range(10))
    assert loader.calls == [0, 0]


@pytest.mark.asyncio
async def test_os_errors_become_network_errors() -> None:
    async def broken(chunk_index, chunk_size):
        raise ConnectionResetError("peer reset")

    store = VirtualDataStore(broken, chunk_size=10)

    with pytest.raises(NetworkError):
        await store.get_chunk(0)


@pytest.mark.asyncio
async def test_reset_discards_in_flight_results() -> None:
    loader = _Loader(100, gated=True)
    store = VirtualDataStore(loader, chunk_size=10)

    pending = asyncio.ensure_future(store.get_chunk(0))
    await asyncio.sleep(0)
    store.reset()
    loader.release(0)
    await pending

    assert store.cached_chunk_count == 0
    assert store.stats.discarded == 1
    assert store.generation == 1


@pytest.mark.asyncio
async def test_set_data_preloads_first_chunk() -> None:
    store = VirtualDataStore.from_sequence(list(range(25)), chunk_size=10)

    assert store.cached_chunk_indices == [0]
    assert store.total_size == 25
    assert store.peek(3) == 3
    assert store.peek(15) is None

    result = await store.get_range(18, 40)
    assert list(result.items) == list(range(18, 25))


@pytest.mark.asyncio
async def test_from_pages_maps_chunks_to_pages() -> None:
    source = SequencePageSource(list(range(45)))
    store = VirtualDataStore.from_pages(source, chunk_size=20)

    chunk = await store.get_chunk(1)

    assert source.calls == [(2, 20)]
    assert list(chunk.items) == list(range(20, 40))
    assert store.total_size == 45


def test_chunk_indices_for_half_open_range() -> None:
    store = VirtualDataStore(_Loader(), chunk_size=10)

    assert list(store.chunk_indices_for(0, 10)) == [0]
    assert list(store.chunk_indices_for(9, 11)) == [0, 1]
    assert list(store.chunk_indices_for(5, 5)) == []
