"""Chunk-addressable cache over a large backing dataset.

The store keeps at most ``max_cached_chunks`` fixed-size chunks in memory.
Ranges are served by loading the chunks they span on demand, one fetch per
missing chunk index, and the least recently accessed chunk is evicted once
the budget is exceeded.

Failure policy for :meth:`VirtualDataStore.get_range`: a chunk that fails to
load never aborts the other chunks of the same call. The result carries the
items that did load, in index order, together with the failed chunk indices,
the global index ranges they would have covered and the individual errors.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import (
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from ..config import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_CACHED_CHUNKS
from ..errors import ConfigurationError, FetchError, NetworkError
from ..io.page_fetcher import FetchPage

logger = logging.getLogger(__name__)

T = TypeVar("T")

ChunkLoader = Callable[[int, int], Awaitable[Sequence[T]]]
"""Coroutine factory ``(chunk_index, chunk_size) -> items`` for one chunk."""


@dataclass(frozen=True)
class Chunk(Generic[T]):
    """Immutable slice ``[index * size, (index + 1) * size)`` of the dataset."""

    index: int
    items: Tuple[T, ...]


@dataclass
class CacheEntry(Generic[T]):
    chunk: Chunk[T]
    last_access_time: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    failures: int = 0
    discarded: int = 0


@dataclass(frozen=True)
class RangeResult(Generic[T]):
    """Outcome of :meth:`VirtualDataStore.get_range`."""

    start: int
    end: int
    items: Tuple[T, ...] = ()
    failed_chunks: Tuple[int, ...] = ()
    failed_ranges: Tuple[Tuple[int, int], ...] = ()
    errors: Mapping[int, FetchError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed_chunks

    @property
    def error(self) -> Optional[FetchError]:
        """The first failure in index order, if any."""

        if not self.failed_chunks:
            return None
        return self.errors.get(self.failed_chunks[0])


class VirtualDataStore(Generic[T]):
    """LRU chunk cache with de-duplicated asynchronous loads."""

    def __init__(
        self,
        loader: Optional[ChunkLoader] = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_cached_chunks: int = DEFAULT_MAX_CACHED_CHUNKS,
        total_size: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {chunk_size}")
        if max_cached_chunks <= 0:
            raise ConfigurationError(f"max_cached_chunks must be positive, got {max_cached_chunks}")
        self._loader = loader
        self._chunk_size = chunk_size
        self._max_cached_chunks = max_cached_chunks
        self._total_size = total_size
        self._clock = clock
        self._entries: "OrderedDict[int, CacheEntry[T]]" = OrderedDict()
        self._inflight: Dict[int, "asyncio.Task[Chunk[T]]"] = {}
        self._generation = 0
        self.stats = CacheStats()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_pages(
        cls,
        fetch_page: FetchPage,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_cached_chunks: int = DEFAULT_MAX_CACHED_CHUNKS,
        clock: Callable[[], float] = time.monotonic,
    ) -> "VirtualDataStore":
        """Back the store with the page-fetch contract.

        Chunk ``i`` is page ``i + 1`` fetched with ``page_size = chunk_size``;
        every page updates :attr:`total_size` from its pagination snapshot.
        """

        store: "VirtualDataStore" = cls(
            chunk_size=chunk_size, max_cached_chunks=max_cached_chunks, clock=clock
        )

        async def load(chunk_index: int, size: int) -> Sequence:
            result = await fetch_page(chunk_index + 1, size)
            store._total_size = result.pagination.total
            return result.data

        store._loader = load
        return store

    @classmethod
    def from_sequence(cls, data: Sequence[T], **kwargs) -> "VirtualDataStore[T]":
        store: "VirtualDataStore[T]" = cls(**kwargs)
        store.set_data(data)
        return store

    def set_data(self, data: Sequence[T]) -> None:
        """Serve chunks from an in-memory sequence; the first chunk is preloaded."""

        async def load(chunk_index: int, size: int) -> Sequence[T]:
            start = chunk_index * size
            return data[start : start + size]

        self.reset()
        self._loader = load
        self._total_size = len(data)
        if data:
            self._insert(Chunk(0, tuple(data[: self._chunk_size])))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def max_cached_chunks(self) -> int:
        return self._max_cached_chunks

    @property
    def total_size(self) -> Optional[int]:
        return self._total_size

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def cached_chunk_count(self) -> int:
        return len(self._entries)

    @property
    def cached_chunk_indices(self) -> List[int]:
        """Cached chunk indices, least recently accessed first."""

        return list(self._entries)

    def entry(self, chunk_index: int) -> Optional[CacheEntry[T]]:
        return self._entries.get(chunk_index)

    def is_pending(self, chunk_index: int) -> bool:
        return chunk_index in self._inflight

    def chunk_indices_for(self, start: int, end: int) -> range:
        """Chunk indices spanned by the half-open item range ``[start, end)``."""

        if end <= start:
            return range(0)
        return range(start // self._chunk_size, (end - 1) // self._chunk_size + 1)

    def peek(self, index: int) -> Optional[T]:
        """Return the cached item at global *index* without loading or touching."""

        entry = self._entries.get(index // self._chunk_size)
        if entry is None:
            return None
        offset = index % self._chunk_size
        items = entry.chunk.items
        return items[offset] if offset < len(items) else None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def get_chunk(self, chunk_index: int) -> Chunk[T]:
        """Return chunk *chunk_index*, loading it if needed.

        Concurrent callers for the same index share one fetch. Raises
        :class:`FetchError` when the load fails.
        """

        entry = self._entries.get(chunk_index)
        if entry is not None:
            self.stats.hits += 1
            self._touch(chunk_index, entry)
            return entry.chunk

        task = self._inflight.get(chunk_index)
        if task is None:
            if self._loader is None:
                raise ConfigurationError("VirtualDataStore has no data source")
            self.stats.misses += 1
            task = asyncio.ensure_future(self._load(chunk_index, self._generation))
            self._inflight[chunk_index] = task
            task.add_done_callback(lambda done, idx=chunk_index: self._forget(idx, done))
        # Shielded so a cancelled waiter never cancels a load other callers share.
        return await asyncio.shield(task)

    async def get_range(self, start: int, end: int) -> RangeResult[T]:
        """Return the items in ``[start, end)`` in ascending index order."""

        start = max(0, start)
        if self._total_size is not None:
            end = min(end, self._total_size)
        if end <= start:
            return RangeResult(start, max(start, end))

        indices = list(self.chunk_indices_for(start, end))
        outcomes = await asyncio.gather(
            *(self.get_chunk(idx) for idx in indices), return_exceptions=True
        )

        items: List[T] = []
        failed: List[int] = []
        failed_ranges: List[Tuple[int, int]] = []
        errors: Dict[int, FetchError] = {}
        for idx, outcome in zip(indices, outcomes):
            chunk_start = idx * self._chunk_size
            lo = max(start, chunk_start)
            hi = min(end, chunk_start + self._chunk_size)
            if isinstance(outcome, FetchError):
                failed.append(idx)
                errors[idx] = outcome
                failed_ranges.append((lo, hi))
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            items.extend(outcome.items[lo - chunk_start : hi - chunk_start])

        if failed:
            logger.warning(
                "Range [%d, %d) loaded partially; failed chunks: %s", start, end, failed
            )
        return RangeResult(
            start,
            end,
            tuple(items),
            tuple(failed),
            tuple(failed_ranges),
            errors,
        )

    def reset(self) -> None:
        """Drop every cached chunk and abandon in-flight loads."""

        self._generation += 1
        self._entries.clear()
        self._inflight.clear()
        logger.debug("VirtualDataStore reset (generation %d)", self._generation)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _load(self, chunk_index: int, generation: int) -> Chunk[T]:
        assert self._loader is not None
        try:
            items = await self._loader(chunk_index, self._chunk_size)
        except FetchError:
            self.stats.failures += 1
            raise
        except (OSError, asyncio.TimeoutError) as exc:
            self.stats.failures += 1
            raise NetworkError(f"Failed to load chunk {chunk_index}: {exc}") from exc

        chunk = Chunk(chunk_index, tuple(items))
        if generation != self._generation:
            self.stats.discarded += 1
            logger.debug("Discarding chunk %d from stale generation %d", chunk_index, generation)
            return chunk
        self._insert(chunk)
        return chunk

    def _forget(self, chunk_index: int, task: "asyncio.Task[Chunk[T]]") -> None:
        if self._inflight.get(chunk_index) is task:
            del self._inflight[chunk_index]

    def _touch(self, chunk_index: int, entry: CacheEntry[T]) -> None:
        entry.last_access_time = self._clock()
        self._entries.move_to_end(chunk_index)

    def _insert(self, chunk: Chunk[T]) -> None:
        existing = self._entries.get(chunk.index)
        if existing is not None:
            # Content for an index is idempotent; keep the cached copy.
            self._touch(chunk.index, existing)
            return
        self._entries[chunk.index] = CacheEntry(chunk, self._clock())
        while len(self._entries) > self._max_cached_chunks:
            evicted, _ = self._entries.popitem(last=False)
            self.stats.evictions += 1
            logger.debug("Evicted chunk %d", evicted)


__all__ = [
    "CacheEntry",
    "CacheStats",
    "Chunk",
    "ChunkLoader",
    "RangeResult",
    "VirtualDataStore",
]
