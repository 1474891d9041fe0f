"""Discrete and infinite pagination behind one state machine.

``idle -> loading -> {loaded, error}``; any fetch moves a settled manager
back to ``loading``. Previously fetched data stays visible while a new fetch
is in flight and is only replaced, atomically, when that fetch succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, Tuple, TypeVar

from PySide6.QtCore import QObject, Signal

from ..config import DEFAULT_PAGE_SIZE, PaginationMode
from ..errors import ConfigurationError, FetchError, NetworkError
from ..io.page_fetcher import FetchPage, PageResult, PaginationState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class PaginationSnapshot(Generic[T]):
    """Read-only view of a :class:`PaginationManager` at one instant."""

    status: LoadStatus
    data: Tuple[T, ...]
    all_data: Tuple[T, ...]
    is_loading: bool
    is_fetching: bool
    is_loading_more: bool
    error: Optional[FetchError]
    is_empty: bool
    current_page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
    has_next: bool


class PaginationManager(QObject, Generic[T]):
    """Fetch pages through the page-fetch contract.

    In discrete mode :meth:`set_page` replaces the visible page; in infinite
    mode :meth:`load_more` appends the next page to an accumulated list. The
    mode is fixed for the lifetime of the instance.
    """

    stateChanged = Signal(object)

    def __init__(
        self,
        fetch_page: FetchPage,
        *,
        mode: PaginationMode = PaginationMode.DISCRETE,
        page_size: int = DEFAULT_PAGE_SIZE,
        initial_page: int = 1,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        if page_size <= 0:
            raise ConfigurationError(f"page_size must be positive, got {page_size}")
        self._fetch_page = fetch_page
        self._mode = PaginationMode(mode)
        self._initial_page = max(1, initial_page)
        self._initial_page_size = page_size

        self._status = LoadStatus.IDLE
        self._page = self._initial_page
        self._page_size = page_size
        self._pages: List[PageResult[T]] = []
        self._error: Optional[FetchError] = None
        self._in_flight = 0
        self._loading_more = False
        self._refreshing = False
        self._append_task: Optional[asyncio.Future] = None
        self._first_page_task: Optional[asyncio.Future] = None
        self._generation = 0
        self._request_serial = 0
        self.fetch_count = 0

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def mode(self) -> PaginationMode:
        return self._mode

    @property
    def status(self) -> LoadStatus:
        return self._status

    @property
    def pagination(self) -> Optional[PaginationState]:
        return self._pages[-1].pagination if self._pages else None

    @property
    def data(self) -> List[T]:
        """Items of the latest page."""

        return list(self._pages[-1].data) if self._pages else []

    @property
    def all_data(self) -> List[T]:
        """Every accumulated item; equals :attr:`data` in discrete mode."""

        return [item for page in self._pages for item in page.data]

    @property
    def is_loading(self) -> bool:
        """A fetch is running and there is nothing to show yet."""

        return self._in_flight > 0 and not self._pages

    @property
    def is_fetching(self) -> bool:
        return self._in_flight > 0

    @property
    def is_loading_more(self) -> bool:
        return self._loading_more

    @property
    def error(self) -> Optional[FetchError]:
        return self._error

    @property
    def is_empty(self) -> bool:
        return not any(page.data for page in self._pages) and not self.is_loading

    @property
    def current_page(self) -> int:
        state = self.pagination
        return state.page if state is not None else self._page

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def total_items(self) -> int:
        state = self.pagination
        return state.total if state is not None else 0

    @property
    def total_pages(self) -> int:
        state = self.pagination
        return state.total_pages if state is not None else 0

    @property
    def has_next_page(self) -> bool:
        state = self.pagination
        return state.has_next_page if state is not None else False

    @property
    def has_previous_page(self) -> bool:
        state = self.pagination
        return state.has_previous_page if state is not None else False

    @property
    def has_next(self) -> bool:
        """Infinite mode only: another page can be appended."""

        return self._mode is PaginationMode.INFINITE and self.has_next_page

    def snapshot(self) -> PaginationSnapshot[T]:
        return PaginationSnapshot(
            status=self._status,
            data=tuple(self.data),
            all_data=tuple(self.all_data),
            is_loading=self.is_loading,
            is_fetching=self.is_fetching,
            is_loading_more=self.is_loading_more,
            error=self._error,
            is_empty=self.is_empty,
            current_page=self.current_page,
            page_size=self._page_size,
            total_items=self.total_items,
            total_pages=self.total_pages,
            has_next_page=self.has_next_page,
            has_previous_page=self.has_previous_page,
            has_next=self.has_next,
        )

    # ------------------------------------------------------------------
    # Discrete mode
    # ------------------------------------------------------------------
    async def set_page(self, page: int) -> None:
        if self._mode is not PaginationMode.DISCRETE:
            return
        self._page = max(1, int(page))
        await self._fetch_discrete(self._page)

    async def next_page(self) -> None:
        if not self.has_next_page:
            return
        if self._mode is PaginationMode.INFINITE:
            await self.load_more()
        else:
            await self.set_page(self.current_page + 1)

    async def previous_page(self) -> None:
        if self._mode is PaginationMode.DISCRETE and self.has_previous_page:
            await self.set_page(self.current_page - 1)

    async def set_page_size(self, size: int) -> None:
        """Change the page size and restart from the initial page."""

        self._page_size = max(1, int(size))
        self._page = self._initial_page
        await self.refresh()

    # ------------------------------------------------------------------
    # Infinite mode
    # ------------------------------------------------------------------
    async def load_more(self) -> None:
        """Append the next page.

        A no-op after the last page was seen, while another next-page fetch
        is in flight and while a refresh is rebuilding the page list. On an
        empty manager it joins the first-page fetch.
        """

        if self._mode is not PaginationMode.INFINITE or self._loading_more or self._refreshing:
            return
        if not self._pages:
            await self._load_first_infinite()
            return
        if not self.has_next_page:
            return

        next_page = self._pages[-1].pagination.page + 1
        self._loading_more = True
        self._append_task = asyncio.ensure_future(self._append_page(next_page, self._generation))
        await asyncio.shield(self._append_task)

    async def _append_page(self, page: int, generation: int) -> None:
        try:
            result = await self._run_fetch(page, self._page_size)
        except FetchError as exc:
            if generation == self._generation:
                self._fail(exc)
            return
        finally:
            if generation == self._generation:
                self._loading_more = False
        if generation != self._generation:
            return
        self._pages.append(result)
        self._succeed()

    # ------------------------------------------------------------------
    # Shared actions
    # ------------------------------------------------------------------
    async def load(self) -> None:
        """Fetch the first page (or the current page in discrete mode)."""

        if self._mode is PaginationMode.INFINITE:
            if not self._pages:
                await self._load_first_infinite()
        else:
            await self._fetch_discrete(self._page)

    async def refresh(self) -> None:
        """Refetch what is shown, keeping it visible until the fetch succeeds."""

        if self._mode is PaginationMode.DISCRETE:
            await self._fetch_discrete(self._page)
            return
        if self._refreshing:
            return

        generation = self._generation
        self._refreshing = True
        try:
            # Let a running append land first so the page count below includes it.
            for pending in (self._append_task, self._first_page_task):
                if pending is not None and not pending.done():
                    await asyncio.shield(pending)
            if generation != self._generation:
                return
            await self._refetch_pages(generation)
        finally:
            if generation == self._generation:
                self._refreshing = False

    async def _refetch_pages(self, generation: int) -> None:
        count = max(1, len(self._pages))
        refreshed: List[PageResult[T]] = []
        for page in range(self._initial_page, self._initial_page + count):
            try:
                result = await self._run_fetch(page, self._page_size)
            except FetchError as exc:
                if generation == self._generation:
                    self._fail(exc)
                return
            if generation != self._generation:
                return
            refreshed.append(result)
            if not result.pagination.has_next_page:
                break
        self._pages = refreshed
        self._succeed()

    async def reset(self) -> None:
        """Return to the initial page and page size, then refetch."""

        self._abandon()
        self._pages = []
        self._page = self._initial_page
        self._page_size = self._initial_page_size
        self._status = LoadStatus.IDLE
        await self.load()

    def dispose(self) -> None:
        """Abandon in-flight requests; their results will be ignored."""

        self._abandon()
        self._pages = []
        self._status = LoadStatus.IDLE
        self._emit()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _fetch_discrete(self, page: int) -> None:
        generation = self._generation
        self._request_serial += 1
        serial = self._request_serial
        try:
            result = await self._run_fetch(page, self._page_size)
        except FetchError as exc:
            if generation == self._generation and serial == self._request_serial:
                self._fail(exc)
            return
        if generation != self._generation or serial != self._request_serial:
            logger.debug("Dropping superseded response for page %d", page)
            return
        self._pages = [result]
        self._succeed()

    async def _load_first_infinite(self) -> None:
        """Start the first-page fetch, or join the one already running."""

        task = self._first_page_task
        if task is None or task.done():
            task = self._first_page_task = asyncio.ensure_future(self._fetch_first_infinite())
        await asyncio.shield(task)

    async def _fetch_first_infinite(self) -> None:
        generation = self._generation
        try:
            result = await self._run_fetch(self._initial_page, self._page_size)
        except FetchError as exc:
            if generation == self._generation:
                self._fail(exc)
            return
        if generation != self._generation:
            return
        self._pages = [result]
        self._succeed()

    async def _run_fetch(self, page: int, page_size: int) -> PageResult[T]:
        self.fetch_count += 1
        self._in_flight += 1
        generation = self._generation
        self._status = LoadStatus.LOADING
        self._emit()
        try:
            return await self._fetch_page(page, page_size)
        except FetchError:
            raise
        except (OSError, asyncio.TimeoutError) as exc:
            raise NetworkError(f"Failed to fetch page {page}: {exc}", page=page) from exc
        finally:
            if generation == self._generation:
                self._in_flight -= 1

    def _succeed(self) -> None:
        self._error = None
        self._status = LoadStatus.LOADED
        self._emit()

    def _fail(self, error: FetchError) -> None:
        logger.warning("Page fetch failed: %s", error)
        self._error = error
        self._status = LoadStatus.ERROR
        self._emit()

    def _abandon(self) -> None:
        self._generation += 1
        self._in_flight = 0
        self._loading_more = False
        self._refreshing = False
        self._append_task = None
        self._first_page_task = None
        self._error = None

    def _emit(self) -> None:
        self.stateChanged.emit(self.snapshot())


__all__ = ["LoadStatus", "PaginationManager", "PaginationSnapshot"]
