"""Bookkeeping for sets of half-open index ranges."""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from typing import Iterable, Iterator, List, NamedTuple


class LoadRange(NamedTuple):
    """Half-open index range ``[start, end)``."""

    start: int
    end: int

    @property
    def size(self) -> int:
        return max(0, self.end - self.start)

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def overlaps(self, other: "LoadRange") -> bool:
        return self.start < other.end and other.start < self.end

    def clamp(self, lower: int, upper: int) -> "LoadRange":
        start = max(lower, min(self.start, upper))
        end = max(start, min(self.end, upper))
        return LoadRange(start, end)


class RangeSet:
    """Sorted, coalesced collection of disjoint :class:`LoadRange` values."""

    def __init__(self, ranges: Iterable[LoadRange] = ()) -> None:
        self._starts: List[int] = []
        self._ends: List[int] = []
        for item in ranges:
            self.add(item)

    def add(self, item: LoadRange) -> None:
        start, end = item
        if end <= start:
            return
        # Every stored range touching [start, end] is merged into the new one.
        lo = bisect_left(self._ends, start)
        hi = bisect_right(self._starts, end)
        if lo < hi:
            start = min(start, self._starts[lo])
            end = max(end, self._ends[hi - 1])
        self._starts[lo:hi] = [start]
        self._ends[lo:hi] = [end]

    def discard(self, item: LoadRange) -> None:
        start, end = item
        if end <= start:
            return
        kept = [
            piece
            for existing in self
            for piece in (LoadRange(existing.start, min(existing.end, start)), LoadRange(max(existing.start, end), existing.end))
            if not piece.is_empty
        ]
        self._starts = [r.start for r in kept]
        self._ends = [r.end for r in kept]

    def contains(self, item: LoadRange) -> bool:
        start, end = item
        if end <= start:
            return True
        pos = bisect_right(self._starts, start) - 1
        return pos >= 0 and self._ends[pos] >= end

    def overlapping(self, item: LoadRange) -> List[LoadRange]:
        start, end = item
        lo = bisect_right(self._ends, start)
        hi = bisect_left(self._starts, end)
        return [LoadRange(self._starts[i], self._ends[i]) for i in range(lo, hi)]

    def gaps(self, item: LoadRange) -> List[LoadRange]:
        """Sub-ranges of *item* not covered by this set."""

        start, end = item
        result: List[LoadRange] = []
        cursor = start
        for covered in self.overlapping(item):
            if covered.start > cursor:
                result.append(LoadRange(cursor, covered.start))
            cursor = max(cursor, covered.end)
        if cursor < end:
            result.append(LoadRange(cursor, end))
        return result

    def clear(self) -> None:
        self._starts.clear()
        self._ends.clear()

    def __iter__(self) -> Iterator[LoadRange]:
        return (LoadRange(s, e) for s, e in zip(self._starts, self._ends))

    def __len__(self) -> int:
        return len(self._starts)

    def __bool__(self) -> bool:
        return bool(self._starts)

    def __repr__(self) -> str:
        return f"RangeSet({list(self)!r})"


def subtract(item: LoadRange, *sets: RangeSet) -> List[LoadRange]:
    """Return the parts of *item* covered by none of *sets*."""

    pieces = [item] if not item.is_empty else []
    for ranges in sets:
        pieces = [gap for piece in pieces for gap in ranges.gaps(piece)]
    return pieces


__all__ = ["LoadRange", "RangeSet", "subtract"]
