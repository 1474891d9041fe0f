"""Exactly-one-of loading, error, empty or content."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

SKELETON = "skeleton"
"""Default placeholder rendered for rows that are still loading."""


class ViewState(str, Enum):
    CONTENT = "content"
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"


def resolve_view_state(*, is_loading: bool, error: Any, is_empty: bool) -> ViewState:
    """Pick the single state to show, checked in loading, error, empty order.

    *is_loading* means an initial load with nothing to show yet; a fetch that
    runs while rows are already displayed keeps the view in ``CONTENT``.
    """

    if is_loading:
        return ViewState.LOADING
    if error:
        return ViewState.ERROR
    if is_empty:
        return ViewState.EMPTY
    return ViewState.CONTENT


@dataclass(frozen=True)
class SkeletonRow:
    index: int
    offset: float
    size: float
    content: Any = SKELETON


@dataclass(frozen=True)
class StatePanel:
    """Full-viewport panel shown instead of rows."""

    state: ViewState
    message: str = ""
    detail: str = ""
    skeleton: Tuple[SkeletonRow, ...] = ()
    retry: Optional[Callable[[], Any]] = None


def skeleton_rows(count: int, size: float, render: Optional[Callable[[], Any]] = None) -> Tuple[SkeletonRow, ...]:
    """Placeholder rows sized like real rows so the layout does not jump."""

    content = render if render is not None else (lambda: SKELETON)
    return tuple(SkeletonRow(index=i, offset=i * size, size=size, content=content()) for i in range(max(0, count)))


__all__ = [
    "SKELETON",
    "SkeletonRow",
    "StatePanel",
    "ViewState",
    "resolve_view_state",
    "skeleton_rows",
]
