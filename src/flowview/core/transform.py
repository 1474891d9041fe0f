"""Small data helpers used when preparing rows for display."""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Hashable, List, Optional, Sequence, Tuple, TypeVar, Union

import numpy as np

from ..errors import ConfigurationError

T = TypeVar("T")
R = TypeVar("R")


def create_chunks(data: Sequence[T], chunk_size: int) -> List[Sequence[T]]:
    """Split *data* into consecutive slices of at most *chunk_size* items."""

    if chunk_size <= 0:
        raise ConfigurationError(f"chunk_size must be positive, got {chunk_size}")
    return [data[i : i + chunk_size] for i in range(0, len(data), chunk_size)]


def efficient_filter(
    data: Sequence[T],
    predicate: Callable[[T, int], bool],
    max_results: Optional[int] = None,
) -> List[T]:
    """Return items matching *predicate*, stopping after *max_results* hits."""

    result: List[T] = []
    for index, item in enumerate(data):
        if predicate(item, index):
            result.append(item)
            if max_results and len(result) >= max_results:
                break
    return result


class SortAlgorithm(str, Enum):
    NATIVE = "native"
    QUICKSORT = "quicksort"
    MERGESORT = "mergesort"


def efficient_sort(
    data: Sequence[T],
    key: Optional[Callable[[T], Any]] = None,
    algorithm: Union[SortAlgorithm, str] = SortAlgorithm.NATIVE,
    *,
    reverse: bool = False,
) -> List[T]:
    """Return a sorted copy of *data*.

    ``native`` is the built-in stable sort. ``quicksort`` and ``mergesort``
    argsort the extracted keys with numpy; ``mergesort`` keeps equal keys in
    input order.
    """

    try:
        algorithm = SortAlgorithm(algorithm)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown sort algorithm: {algorithm!r}") from exc
    if algorithm is SortAlgorithm.NATIVE or len(data) < 2:
        return sorted(data, key=key, reverse=reverse)

    keys = np.asarray([key(item) if key is not None else item for item in data])
    kind = "stable" if algorithm is SortAlgorithm.MERGESORT else "quicksort"
    if reverse:
        # Reverse the input first so equal keys still come out in input order.
        order = np.argsort(keys[::-1], kind=kind)[::-1]
        return [data[len(data) - 1 - int(i)] for i in order]
    return [data[int(i)] for i in np.argsort(keys, kind=kind)]


@dataclass(frozen=True)
class WindowSlice(Generic[T]):
    items: Sequence[T]
    total_count: int
    start: int
    end: int


def window_slice(data: Sequence[T], start: int, end: int, overscan: int = 5) -> WindowSlice[T]:
    """Slice ``[start - overscan, end + overscan)`` out of *data*, clamped."""

    actual_start = max(0, start - overscan)
    actual_end = min(len(data), end + overscan)
    return WindowSlice(data[actual_start:actual_end], len(data), actual_start, max(actual_start, actual_end))


class MemoizedTransformer(Generic[T, R]):
    """Bounded LRU memo around an expensive transform.

    Entries are addressed by an explicit caller-supplied key (a query key or
    dataset version), never by hashing the payload itself. Entries older than
    *max_age* seconds are recomputed.
    """

    def __init__(
        self,
        transformer: Callable[[T], R],
        cache_size: int = 10,
        max_age: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if cache_size <= 0:
            raise ConfigurationError(f"cache_size must be positive, got {cache_size}")
        self._transformer = transformer
        self._cache_size = cache_size
        self._max_age = max_age
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[R, float]]" = OrderedDict()

    def __call__(self, key: Hashable, data: T) -> R:
        now = self._clock()
        cached = self._entries.get(key)
        if cached is not None and now - cached[1] < self._max_age:
            self._entries.move_to_end(key)
            return cached[0]

        result = self._transformer(data)
        self._entries[key] = (result, now)
        self._entries.move_to_end(key)
        while len(self._entries) > self._cache_size:
            self._entries.popitem(last=False)
        return result

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop the entry for *key*, or every entry when *key* is ``None``."""

        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "MemoizedTransformer",
    "SortAlgorithm",
    "WindowSlice",
    "create_chunks",
    "efficient_filter",
    "efficient_sort",
    "window_slice",
]
