"""Memoised summary statistics over a growing collection."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Generic, Hashable, Iterable, List, Optional, Tuple, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

Selector = Callable[[Any], float]


def nearest_rank_index(count: int, p: float) -> int:
    """Return the nearest-rank index for percentile *p* over *count* values."""

    index = math.ceil((p / 100.0) * count) - 1
    return max(0, min(index, count - 1))


def _scalar(value: Any) -> Any:
    # numpy scalars leak dtype details into callers; hand back plain Python numbers.
    return value.item() if isinstance(value, np.generic) else value


class DataAggregator(Generic[T]):
    """Compute count, sum, average, extrema, percentiles and groupings.

    Every result is memoised under ``(operation, selector)`` where the
    selector is compared by identity: passing the same function object twice
    is a cache hit, a fresh lambda is a miss. Any mutation clears the whole
    memo before the next read; aggregates are never patched incrementally.
    """

    def __init__(self, items: Optional[Iterable[T]] = None) -> None:
        self._items: List[T] = list(items) if items is not None else []
        self._cache: Dict[Tuple[Hashable, ...], Any] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def add(self, items: Iterable[T]) -> None:
        """Append *items* and invalidate every memoised result."""

        self._cache.clear()
        self._items.extend(items)

    def reset(self, items: Optional[Iterable[T]] = None) -> None:
        """Replace the backing collection."""

        self._cache.clear()
        self._items = list(items) if items is not None else []

    def clear(self) -> None:
        self.reset()

    @property
    def items(self) -> Tuple[T, ...]:
        return tuple(self._items)

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------
    def count(self) -> int:
        return len(self._items)

    def sum(self, selector: Selector) -> float:
        return self._memo(("sum", selector), lambda: self._reduce(selector, np.sum, 0))

    def average(self, selector: Selector) -> float:
        def compute() -> float:
            if not self._items:
                return 0
            return self.sum(selector) / len(self._items)

        return self._memo(("average", selector), compute)

    def max(self, selector: Selector) -> Optional[float]:
        return self._memo(("max", selector), lambda: self._reduce(selector, np.max, None))

    def min(self, selector: Selector) -> Optional[float]:
        return self._memo(("min", selector), lambda: self._reduce(selector, np.min, None))

    def percentile(self, selector: Selector, p: float) -> Optional[float]:
        """Nearest-rank percentile: ``sorted[ceil(p/100 * n) - 1]``, clamped."""

        def compute() -> Optional[float]:
            if not self._items:
                return None
            values = np.sort(self._values(selector), kind="stable")
            return _scalar(values[nearest_rank_index(len(values), p)])

        return self._memo(("percentile", selector, float(p)), compute)

    def group_by(self, key_selector: Callable[[T], K]) -> Dict[K, List[T]]:
        """Group items by *key_selector*, preserving first-seen key order."""

        def compute() -> Dict[K, List[T]]:
            groups: Dict[K, List[T]] = {}
            for item in self._items:
                groups.setdefault(key_selector(item), []).append(item)
            return groups

        return self._memo(("group_by", key_selector), compute)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _memo(self, key: Tuple[Hashable, ...], compute: Callable[[], Any]) -> Any:
        try:
            return self._cache[key]
        except KeyError:
            pass
        result = compute()
        self._cache[key] = result
        return result

    def _values(self, selector: Selector) -> np.ndarray:
        return np.asarray([selector(item) for item in self._items])

    def _reduce(self, selector: Selector, reducer: Callable[[np.ndarray], Any], empty: Any) -> Any:
        if not self._items:
            return empty
        return _scalar(reducer(self._values(selector)))


__all__ = ["DataAggregator", "nearest_rank_index"]
