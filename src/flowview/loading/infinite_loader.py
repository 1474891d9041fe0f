"""Decide which index ranges to fetch as the visible window moves."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from PySide6.QtCore import QObject, Signal

from ..config import DEFAULT_DEBOUNCE_MS
from ..errors import FetchError, NetworkError
from ..utils.debounce import Debouncer
from .ranges import LoadRange, RangeSet, subtract

logger = logging.getLogger(__name__)

RangeLoader = Callable[[int, int], Awaitable[Any]]
"""Coroutine factory ``(start, end) -> None`` that fetches ``[start, end)``."""

RangeLike = Union[LoadRange, Tuple[int, int], Sequence[int]]


class InfiniteLoadController(QObject):
    """Track loaded ranges and issue de-duplicated range requests.

    At most one fetch is ever in flight for any index: a request overlapping
    a pending one attaches to the pending task and only fetches the gaps that
    nobody is loading yet. Failed ranges are remembered and are not requested
    again by scrolling; :meth:`retry_failed` is the explicit way back.
    """

    rangeLoaded = Signal(int, int)
    rangeFailed = Signal(int, int, str)

    def __init__(
        self,
        load_range: RangeLoader,
        *,
        total_count: Optional[int] = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._load_range = load_range
        self._total_count = total_count
        self._loaded = RangeSet()
        self._failed = RangeSet()
        self._pending: Dict[LoadRange, "asyncio.Task[None]"] = {}
        self._generation = 0
        self._debouncer = Debouncer(self.on_visible_range_change, debounce_ms)
        self.last_error: Optional[FetchError] = None
        self.fetch_count = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def total_count(self) -> Optional[int]:
        return self._total_count

    @total_count.setter
    def total_count(self, value: Optional[int]) -> None:
        self._total_count = None if value is None else max(0, int(value))

    @property
    def debounce_ms(self) -> int:
        return self._debouncer.delay_ms

    @debounce_ms.setter
    def debounce_ms(self, value: int) -> None:
        self._debouncer.delay_ms = value

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def loaded_ranges(self) -> List[LoadRange]:
        return list(self._loaded)

    @property
    def failed_ranges(self) -> List[LoadRange]:
        return list(self._failed)

    @property
    def pending_ranges(self) -> List[LoadRange]:
        return sorted(self._pending)

    @property
    def is_loading(self) -> bool:
        return bool(self._pending)

    @property
    def debounced_task(self) -> Optional[asyncio.Task]:
        """Task started by the most recent debounced visible-range change."""

        return self._debouncer.last_task

    def is_range_loaded(self, load_range: RangeLike) -> bool:
        return self._loaded.contains(self._normalise(load_range))

    def mark_loaded(self, load_range: RangeLike) -> None:
        """Record data that arrived through another path (e.g. a first page)."""

        rng = self._normalise(load_range)
        self._loaded.add(rng)
        self._failed.discard(rng)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    async def request_range(self, load_range: RangeLike, *, include_failed: bool = True) -> None:
        """Ensure ``[start, end)`` is loaded.

        Raises the first :class:`FetchError` encountered once every attached
        fetch has settled. Ranges that loaded successfully stay loaded.
        """

        rng = self._normalise(load_range)
        if rng.is_empty:
            return

        waits = [task for pending, task in self._pending.items() if pending.overlaps(rng)]
        excluded = [self._loaded, RangeSet(self._pending)]
        if not include_failed:
            excluded.append(self._failed)
        for gap in subtract(rng, *excluded):
            waits.append(self._start_fetch(gap))

        if not waits:
            return
        outcomes = await asyncio.gather(*(asyncio.shield(t) for t in waits), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    async def on_visible_range_change(self, visible: RangeLike) -> None:
        """Request the part of *visible* that is neither loaded nor pending.

        The missing pieces are coalesced into exactly one request covering
        them. Errors are recorded, not raised, because this runs from scroll
        handling.
        """

        rng = self._normalise(visible)
        missing = subtract(rng, self._loaded, RangeSet(self._pending), self._failed)
        if not missing:
            return
        span = LoadRange(missing[0].start, missing[-1].end)
        logger.debug("Visible range %s needs %s", tuple(rng), tuple(span))
        try:
            await self.request_range(span, include_failed=False)
        except FetchError as exc:
            self.last_error = exc

    def schedule_visible_range(self, visible: RangeLike) -> None:
        """Debounced entry point for scroll and resize events."""

        self._debouncer(self._normalise(visible))

    async def retry_failed(self) -> None:
        """Re-request every failed range; only called on explicit user action."""

        failed = list(self._failed)
        self._failed.clear()
        self.last_error = None
        if not failed:
            return
        outcomes = await asyncio.gather(
            *(self.request_range(rng) for rng in failed), return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, FetchError):
                self.last_error = outcome
            elif isinstance(outcome, BaseException):
                raise outcome

    def reset(self) -> None:
        """Forget every range and abandon in-flight requests."""

        self._generation += 1
        self._debouncer.cancel()
        self._loaded.clear()
        self._failed.clear()
        self._pending.clear()
        self.last_error = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _normalise(self, load_range: RangeLike) -> LoadRange:
        start, end = load_range
        rng = LoadRange(int(start), int(end))
        if self._total_count is not None:
            rng = rng.clamp(0, self._total_count)
        else:
            rng = rng.clamp(0, max(0, rng.end))
        return rng

    def _start_fetch(self, gap: LoadRange) -> "asyncio.Task[None]":
        self.fetch_count += 1
        task = asyncio.ensure_future(self._fetch(gap, self._generation))
        self._pending[gap] = task
        task.add_done_callback(lambda done, key=gap: self._forget(key, done))
        return task

    async def _fetch(self, gap: LoadRange, generation: int) -> None:
        try:
            await self._load_range(gap.start, gap.end)
        except FetchError as exc:
            self._record_failure(gap, generation, exc)
            raise
        except (OSError, asyncio.TimeoutError) as exc:
            error = NetworkError(f"Failed to load rows {gap.start}-{gap.end}: {exc}")
            self._record_failure(gap, generation, error)
            raise error from exc
        except Exception as exc:
            # Still recorded as failed so scrolling does not refetch it.
            error = FetchError(f"Unexpected error loading rows {gap.start}-{gap.end}: {exc!r}")
            self._record_failure(gap, generation, error)
            raise

        if generation != self._generation:
            logger.debug("Dropping rows %s from stale generation %d", tuple(gap), generation)
            return
        self._loaded.add(gap)
        self._failed.discard(gap)
        self.rangeLoaded.emit(gap.start, gap.end)

    def _record_failure(self, gap: LoadRange, generation: int, error: FetchError) -> None:
        logger.warning("Loading rows [%d, %d) failed: %s", gap.start, gap.end, error)
        if generation != self._generation:
            return
        self._failed.add(gap)
        self.last_error = error
        self.rangeFailed.emit(gap.start, gap.end, str(error))

    def _forget(self, gap: LoadRange, task: "asyncio.Task[None]") -> None:
        if self._pending.get(gap) is task:
            del self._pending[gap]


__all__ = ["InfiniteLoadController", "RangeLoader"]
