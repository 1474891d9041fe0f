"""Cooperative batch processing for large in-memory collections.

A transform over a few hundred thousand rows is split into consecutive
slices. Each slice is processed synchronously and control is handed back to
the host event loop before the next one, so scroll and input events keep
flowing while the work progresses.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Protocol, Sequence, TypeVar

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[int, int], None]


class Yielder(Protocol):
    """Awaitable hook that hands control back to the host scheduler."""

    async def __call__(self) -> None:
        ...


class AsyncioYield:
    """Yield to the asyncio loop with a zero-delay sleep."""

    async def __call__(self) -> None:
        await asyncio.sleep(0)


class QtEventsYield:
    """Drain pending Qt events, then yield to the asyncio loop.

    This is the closest equivalent of an idle callback when the host runs a
    Qt event loop next to asyncio: queued paints and input are processed
    between two slices.
    """

    def __init__(self, max_time_ms: int = 5) -> None:
        self._max_time_ms = max_time_ms

    async def __call__(self) -> None:
        from PySide6.QtCore import QCoreApplication, QEventLoop

        if QCoreApplication.instance() is not None:
            QCoreApplication.processEvents(QEventLoop.ProcessEventsFlag.AllEvents, self._max_time_ms)
        await asyncio.sleep(0)


class TimeSliceYield:
    """Only yield once *budget_ms* of uninterrupted work has been spent."""

    def __init__(
        self,
        budget_ms: float = 8.0,
        inner: Optional[Yielder] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._budget = budget_ms / 1000.0
        self._inner = inner or AsyncioYield()
        self._clock = clock
        self._slice_started = clock()
        self.yield_count = 0

    async def __call__(self) -> None:
        if self._clock() - self._slice_started < self._budget:
            return
        self.yield_count += 1
        await self._inner()
        self._slice_started = self._clock()


async def process_batches(
    data: Sequence[T],
    batch_size: int,
    processor: Callable[[Sequence[T]], Sequence[R]],
    on_progress: Optional[ProgressCallback] = None,
    *,
    yielder: Optional[Yielder] = None,
) -> List[R]:
    """Apply *processor* to consecutive slices of *data* and concatenate results.

    The concatenation equals what a single synchronous pass over *data* would
    produce. ``on_progress(processed, total)`` is called after every slice with
    a strictly increasing ``processed`` that ends at ``len(data)``. Exceptions
    raised by *processor* propagate to the caller.
    """

    if batch_size <= 0:
        raise ConfigurationError(f"batch_size must be positive, got {batch_size}")

    total = len(data)
    results: List[R] = []
    if total == 0:
        return results

    pause = yielder or AsyncioYield()
    processed = 0
    while processed < total:
        batch = data[processed : processed + batch_size]
        results.extend(processor(batch))
        processed = min(processed + batch_size, total)
        if on_progress is not None:
            on_progress(processed, total)
        if processed < total:
            await pause()

    logger.debug("Processed %d items in batches of %d", total, batch_size)
    return results


__all__ = [
    "AsyncioYield",
    "ProgressCallback",
    "QtEventsYield",
    "TimeSliceYield",
    "Yielder",
    "process_batches",
]
