"""Page-fetch contract between the data layer and the caching core."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Mapping, Protocol, Sequence, TypeVar

from ..errors import ServerError

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@dataclass(frozen=True)
class PaginationState:
    """Immutable pagination snapshot returned with every page.

    ``total`` is authoritative; ``has_next_page`` and ``has_previous_page``
    are always derived from ``page`` and ``total_pages``.
    """

    page: int
    page_size: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def build(cls, page: int, page_size: int, total: int) -> "PaginationState":
        total = max(0, int(total))
        total_pages = math.ceil(total / page_size) if page_size > 0 else 0
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PaginationState":
        """Parse the camelCase REST shape, re-deriving the navigation flags."""

        try:
            page = int(payload["page"])
            page_size = int(payload.get("pageSize", payload.get("page_size")))
            total = int(payload["total"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ServerError(f"Malformed pagination payload: {payload!r}") from exc
        total_pages = payload.get("totalPages", payload.get("total_pages"))
        if total_pages is None:
            return cls.build(page, page_size, total)
        total_pages = int(total_pages)
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )


@dataclass(frozen=True)
class PageResult(Generic[T]):
    data: List[T]
    pagination: PaginationState

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PageResult[Any]":
        data = payload.get("data")
        if not isinstance(data, list):
            raise ServerError("Page payload is missing its 'data' list")
        pagination = payload.get("pagination")
        if not isinstance(pagination, Mapping):
            raise ServerError("Page payload is missing its 'pagination' object")
        return cls(list(data), PaginationState.from_payload(pagination))

    @property
    def is_last(self) -> bool:
        """``True`` for the "no more data" condition, which is not an error."""

        return not self.pagination.has_next_page


class PageFetcher(Protocol[T_co]):
    def __call__(self, page: int, page_size: int) -> Awaitable[PageResult[T_co]]:
        ...


FetchPage = Callable[[int, int], Awaitable[PageResult[T]]]


class SequencePageSource(Generic[T]):
    """Serve pages out of an in-memory sequence through the fetch contract.

    Pages are 1-based. A page past the end returns an empty result flagged as
    the last page rather than failing.
    """

    def __init__(self, rows: Sequence[T]) -> None:
        self._rows = rows
        self.calls: List[tuple[int, int]] = []

    async def __call__(self, page: int, page_size: int) -> PageResult[T]:
        self.calls.append((page, page_size))
        start = (page - 1) * page_size
        data = list(self._rows[start : start + page_size]) if start >= 0 else []
        return PageResult(data, PaginationState.build(page, page_size, len(self._rows)))

    @property
    def total(self) -> int:
        return len(self._rows)


__all__ = [
    "FetchPage",
    "PageFetcher",
    "PageResult",
    "PaginationState",
    "SequencePageSource",
]
