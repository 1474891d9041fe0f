"""Windowed rendering of long lists and tables.

Only the rows intersecting the viewport (plus an overscan margin) are ever
passed to the render callbacks. The scrollable extent is computed from the
item sizes alone, so it does not depend on what has been materialized.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from PySide6.QtCore import QObject, Qt, Signal

from ...config import (
    DEFAULT_EMPTY_MESSAGE,
    DEFAULT_HEIGHT,
    DEFAULT_LIST_ITEM_SIZE,
    DEFAULT_LOADING_ITEM_COUNT,
    DEFAULT_OVERSCAN,
    DEFAULT_TABLE_ITEM_SIZE,
    ViewOptions,
)
from ...errors import ConfigurationError
from ...utils.tasks import spawn
from ..performance_monitor import PerformanceMonitor, performance_monitor
from .columns import Align, ColumnDef, total_width
from .view_state import SKELETON, StatePanel, ViewState, resolve_view_state, skeleton_rows

logger = logging.getLogger(__name__)

T = TypeVar("T")

ItemSize = Union[float, Callable[[int], float]]
RenderItem = Callable[[Any, int], Any]
ActivateItem = Callable[[Any, int], Any]

ACTIVATION_KEYS = frozenset({"Enter", "Return", " ", "Space"})
_ACTIVATION_QT_KEYS = frozenset(
    int(getattr(key, "value", key)) for key in (Qt.Key.Key_Return, Qt.Key.Key_Enter, Qt.Key.Key_Space)
)

ERROR_MESSAGE = "Error loading items"
NO_COLUMNS_MESSAGE = "No columns configured"


def compute_visible_range(
    scroll_offset: float,
    viewport_size: float,
    item_size: float,
    overscan: int,
    total_count: int,
) -> Tuple[int, int]:
    """Return the half-open range of rows to materialize for fixed-size rows."""

    if total_count <= 0:
        return (0, 0)
    if item_size <= 0:
        raise ConfigurationError(f"item_size must be positive, got {item_size}")
    scroll_offset = max(0.0, scroll_offset)
    viewport_size = max(0.0, viewport_size)
    start = math.floor(scroll_offset / item_size) - overscan
    end = math.ceil((scroll_offset + viewport_size) / item_size) + overscan
    start = max(0, min(start, total_count))
    end = max(start, min(end, total_count))
    return (start, end)


def is_activation_key(key: Any) -> bool:
    """``Enter``/``Space`` in either DOM-style names or Qt key codes."""

    if isinstance(key, str):
        return key in ACTIVATION_KEYS
    value = getattr(key, "value", key)
    try:
        return int(value) in _ACTIVATION_QT_KEYS
    except (TypeError, ValueError):
        return False


# ----------------------------------------------------------------------
# Item geometry
# ----------------------------------------------------------------------
class _FixedSizes:
    def __init__(self, size: float) -> None:
        if size <= 0:
            raise ConfigurationError(f"item_size must be positive, got {size}")
        self.size = float(size)

    def size_of(self, index: int) -> float:
        return self.size

    def offset_of(self, index: int, count: int) -> float:
        return index * self.size

    def extent(self, count: int) -> float:
        return count * self.size

    def visible_range(self, offset: float, viewport: float, overscan: int, count: int) -> Tuple[int, int]:
        return compute_visible_range(offset, viewport, self.size, overscan, count)

    def invalidate(self, from_index: int = 0) -> None:
        pass


class _VariableSizes:
    """Prefix offsets over a size callback, extended lazily."""

    def __init__(self, size_of: Callable[[int], float]) -> None:
        self._size_of = size_of
        self._offsets: List[float] = [0.0]

    def size_of(self, index: int) -> float:
        size = float(self._size_of(index))
        if size <= 0:
            raise ConfigurationError(f"item_size({index}) must be positive, got {size}")
        return size

    def _ensure(self, count: int) -> None:
        offsets = self._offsets
        while len(offsets) <= count:
            index = len(offsets) - 1
            offsets.append(offsets[-1] + self.size_of(index))

    def offset_of(self, index: int, count: int) -> float:
        self._ensure(min(index, count))
        return self._offsets[index]

    def extent(self, count: int) -> float:
        self._ensure(count)
        return self._offsets[count]

    def visible_range(self, offset: float, viewport: float, overscan: int, count: int) -> Tuple[int, int]:
        if count <= 0:
            return (0, 0)
        self._ensure(count)
        offsets = self._offsets
        offset = max(0.0, offset)
        first = bisect_right(offsets, offset, 0, count + 1) - 1
        last = bisect_left(offsets, offset + max(0.0, viewport), 0, count + 1)
        start = max(0, min(first - overscan, count))
        end = max(start, min(max(last, first + 1) + overscan, count))
        return (start, end)

    def invalidate(self, from_index: int = 0) -> None:
        del self._offsets[max(0, from_index) + 1 :]


# ----------------------------------------------------------------------
# Frames
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class RenderedRow:
    index: int
    offset: float
    size: float
    content: Any
    item: Any = None
    selected: bool = False
    placeholder: bool = False


@dataclass(frozen=True)
class HeaderCell:
    key: str
    header: str
    width: int
    align: Align


@dataclass(frozen=True)
class RenderFrame:
    """Everything a view needs to paint one frame."""

    state: ViewState
    visible_range: Tuple[int, int]
    total_extent: float
    rows: Tuple[RenderedRow, ...] = ()
    panel: Optional[StatePanel] = None
    header: Tuple[HeaderCell, ...] = ()

    @property
    def rendered_count(self) -> int:
        return len(self.rows)


class WindowedRenderer(QObject, Generic[T]):
    """Virtualized list over an in-memory, possibly growing, item sequence.

    ``rangeChanged(start, end)`` fires only when the materialized range
    changes; ``itemActivated(index)`` fires for clicks and activation keys.
    """

    rangeChanged = Signal(int, int)
    itemActivated = Signal(int)

    def __init__(
        self,
        items: Sequence[T] = (),
        render_item: Optional[RenderItem] = None,
        *,
        item_size: ItemSize = DEFAULT_LIST_ITEM_SIZE,
        height: float = DEFAULT_HEIGHT,
        overscan: int = DEFAULT_OVERSCAN,
        render_skeleton: Optional[Callable[[], Any]] = None,
        on_item_activate: Optional[ActivateItem] = None,
        on_range_change: Optional[Callable[[int, int], Any]] = None,
        load_next_page: Optional[Callable[[], Any]] = None,
        on_retry: Optional[Callable[[], Any]] = None,
        loading_item_count: int = DEFAULT_LOADING_ITEM_COUNT,
        empty_message: str = DEFAULT_EMPTY_MESSAGE,
        monitor: Optional[PerformanceMonitor] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        if overscan < 0:
            raise ConfigurationError(f"overscan must be >= 0, got {overscan}")
        if height < 0:
            raise ConfigurationError(f"height must be >= 0, got {height}")
        self._sizes = _VariableSizes(item_size) if callable(item_size) else _FixedSizes(item_size)
        self._items: List[T] = list(items)
        self._render_item = render_item
        self._render_skeleton = render_skeleton
        self._on_item_activate = on_item_activate
        self._on_range_change = on_range_change
        self._load_next_page = load_next_page
        self._on_retry = on_retry
        self._monitor = monitor if monitor is not None else performance_monitor

        self._viewport = float(height)
        self._overscan = overscan
        self._scroll_offset = 0.0
        self._loading = False
        self._has_next_page = False
        self._error: Optional[Any] = None
        self._selected_index: Optional[int] = None
        self._loading_item_count = max(0, loading_item_count)
        self._empty_message = empty_message
        self._range: Tuple[int, int] = (0, 0)
        self._load_requested_at: Optional[int] = None
        self.load_task: Optional[asyncio.Future] = None
        self._update_range()

    @classmethod
    def from_options(cls, options: ViewOptions, render_item: Optional[RenderItem] = None, **kwargs: Any) -> "WindowedRenderer":
        kwargs.setdefault("item_size", options.item_size)
        kwargs.setdefault("height", options.height)
        kwargs.setdefault("overscan", options.overscan)
        kwargs.setdefault("loading_item_count", options.loading_item_count)
        kwargs.setdefault("empty_message", options.empty_message)
        return cls(render_item=render_item, **kwargs)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def set_items(self, items: Sequence[T]) -> None:
        previous = len(self._items)
        self._items = list(items)
        self._sizes.invalidate(min(previous, len(self._items)))
        self._load_requested_at = None
        self._update_range()

    def append_items(self, items: Sequence[T]) -> None:
        self._sizes.invalidate(len(self._items))
        self._items.extend(items)
        self._load_requested_at = None
        self._update_range()

    def set_loading(self, loading: bool, has_next_page: Optional[bool] = None) -> None:
        self._loading = bool(loading)
        if has_next_page is not None:
            self._has_next_page = bool(has_next_page)
        self._sizes.invalidate(len(self._items))
        self._update_range()

    def set_has_next_page(self, has_next_page: bool) -> None:
        self.set_loading(self._loading, has_next_page)

    def set_error(self, error: Optional[Any]) -> None:
        self._error = error

    def set_selected_index(self, index: Optional[int]) -> None:
        self._selected_index = index

    def set_viewport(self, height: float) -> None:
        self._viewport = max(0.0, float(height))
        self._update_range()

    def on_scroll(self, offset: float) -> None:
        max_offset = max(0.0, self.total_extent - self._viewport)
        self._scroll_offset = max(0.0, min(float(offset), max_offset))
        self._update_range()

    def scroll_to_index(self, index: int) -> None:
        """Scroll so that row *index* starts at the top of the viewport."""

        index = max(0, min(index, self.item_count))
        self.on_scroll(self._sizes.offset_of(index, self.item_count))

    def invalidate_sizes(self, from_index: int = 0) -> None:
        """Drop cached offsets after variable item sizes changed."""

        self._sizes.invalidate(from_index)
        self._update_range()

    # ------------------------------------------------------------------
    # Derived geometry
    # ------------------------------------------------------------------
    @property
    def items(self) -> List[T]:
        return list(self._items)

    @property
    def loaded_count(self) -> int:
        return len(self._items)

    @property
    def placeholder_count(self) -> int:
        if self._loading and self._has_next_page:
            return self._loading_item_count
        return 0

    @property
    def item_count(self) -> int:
        """Real rows plus trailing loading placeholders."""

        return len(self._items) + self.placeholder_count

    @property
    def total_extent(self) -> float:
        return self._sizes.extent(self.item_count)

    @property
    def visible_range(self) -> Tuple[int, int]:
        return self._range

    @property
    def scroll_offset(self) -> float:
        return self._scroll_offset

    @property
    def viewport_size(self) -> float:
        return self._viewport

    @property
    def overscan(self) -> int:
        return self._overscan

    @property
    def selected_index(self) -> Optional[int]:
        return self._selected_index

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def has_next_page(self) -> bool:
        return self._has_next_page

    @property
    def error(self) -> Optional[Any]:
        return self._error

    @property
    def empty_message(self) -> str:
        return self._empty_message

    def item_at(self, index: int) -> Optional[T]:
        if 0 <= index < len(self._items):
            return self._items[index]
        return None

    def item_offset(self, index: int) -> float:
        return self._sizes.offset_of(index, self.item_count)

    def item_size(self, index: int) -> float:
        return self._sizes.size_of(index)

    def is_placeholder(self, index: int) -> bool:
        return len(self._items) <= index < self.item_count

    @property
    def state(self) -> ViewState:
        return resolve_view_state(
            is_loading=self._loading and not self._items,
            error=self._error,
            is_empty=not self._items and not self._loading,
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render(self) -> RenderFrame:
        with self._monitor.measure_block(f"{type(self).__name__}.render"):
            frame = self._render_frame()
        self._monitor.record_virtualization(self.item_count, frame.rendered_count)
        return frame

    def _render_frame(self) -> RenderFrame:
        state = self.state
        if state is not ViewState.CONTENT:
            return RenderFrame(
                state=state,
                visible_range=(0, 0),
                total_extent=self.total_extent,
                panel=self._panel(state),
            )

        start, end = self._range
        rows = tuple(self._render_row(index) for index in range(start, end))
        return RenderFrame(
            state=state,
            visible_range=self._range,
            total_extent=self.total_extent,
            rows=rows,
        )

    def _panel(self, state: ViewState) -> StatePanel:
        if state is ViewState.LOADING:
            size = self._sizes.size_of(0)
            return StatePanel(
                state=state,
                skeleton=skeleton_rows(self._loading_item_count, size, self._render_skeleton),
            )
        if state is ViewState.ERROR:
            return StatePanel(
                state=state,
                message=ERROR_MESSAGE,
                detail=str(self._error),
                retry=self._on_retry,
            )
        return StatePanel(state=state, message=self._empty_message)

    def _render_row(self, index: int) -> RenderedRow:
        offset = self._sizes.offset_of(index, self.item_count)
        size = self._sizes.size_of(index)
        if index >= len(self._items):
            content = self._render_skeleton() if self._render_skeleton is not None else SKELETON
            return RenderedRow(index=index, offset=offset, size=size, content=content, placeholder=True)
        item = self._items[index]
        return RenderedRow(
            index=index,
            offset=offset,
            size=size,
            content=self.render_content(item, index),
            item=item,
            selected=index == self._selected_index,
        )

    def render_content(self, item: T, index: int) -> Any:
        if self._render_item is None:
            return item
        return self._render_item(item, index)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------
    def activate(self, index: int) -> bool:
        """Activate row *index* as a click would; placeholders are ignored."""

        if not 0 <= index < len(self._items):
            return False
        self._selected_index = index
        if self._on_item_activate is not None:
            self._on_item_activate(self._items[index], index)
        self.itemActivated.emit(index)
        return True

    def handle_key(self, index: int, key: Any) -> bool:
        if not is_activation_key(key):
            return False
        return self.activate(index)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _update_range(self) -> None:
        new_range = self._sizes.visible_range(
            self._scroll_offset, self._viewport, self._overscan, self.item_count
        )
        if new_range != self._range:
            self._range = new_range
            self.rangeChanged.emit(*new_range)
            if self._on_range_change is not None:
                self._on_range_change(*new_range)
        self._maybe_load_more()

    def _maybe_load_more(self) -> None:
        if self._load_next_page is None or not self._has_next_page or self._loading:
            return
        start, end = self._range
        loaded = len(self._items)
        if end < loaded or self._load_requested_at == loaded:
            return
        # One request per item count; a new batch of rows re-arms it.
        self._load_requested_at = loaded
        logger.debug("Window reached row %d of %d, loading next page", end, loaded)
        result = self._load_next_page()
        if inspect.isawaitable(result):
            self.load_task = spawn(result)


class VirtualTable(WindowedRenderer[T]):
    """Windowed renderer whose rows are laid out by column definitions."""

    def __init__(
        self,
        items: Sequence[T] = (),
        columns: Sequence[ColumnDef[T]] = (),
        *,
        row_height: ItemSize = DEFAULT_TABLE_ITEM_SIZE,
        on_row_activate: Optional[ActivateItem] = None,
        empty_message: str = "No data available",
        default_column_width: int = 150,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("on_item_activate", on_row_activate)
        super().__init__(items, None, item_size=row_height, empty_message=empty_message, **kwargs)
        self._columns: Tuple[ColumnDef[T], ...] = tuple(columns)
        self._default_column_width = default_column_width

    @classmethod
    def from_options(cls, options: ViewOptions, columns: Sequence[ColumnDef] = (), **kwargs: Any) -> "VirtualTable":
        kwargs.setdefault("row_height", options.item_size)
        kwargs.setdefault("height", options.height)
        kwargs.setdefault("overscan", options.overscan)
        kwargs.setdefault("loading_item_count", options.loading_item_count)
        kwargs.setdefault("empty_message", options.empty_message)
        return cls(columns=columns, **kwargs)

    @property
    def columns(self) -> Tuple[ColumnDef[T], ...]:
        return self._columns

    def set_columns(self, columns: Sequence[ColumnDef[T]]) -> None:
        self._columns = tuple(columns)

    @property
    def total_width(self) -> int:
        return total_width(self._columns, self._default_column_width)

    def header(self) -> Tuple[HeaderCell, ...]:
        return tuple(
            HeaderCell(
                key=column.key,
                header=column.header,
                width=column.resolved_width(self._default_column_width),
                align=column.align,
            )
            for column in self._columns
        )

    def render_content(self, item: T, index: int) -> Tuple[Any, ...]:
        return tuple(column.display(item, index) for column in self._columns)

    def _render_frame(self) -> RenderFrame:
        if not self._columns:
            return RenderFrame(
                state=ViewState.ERROR,
                visible_range=(0, 0),
                total_extent=0.0,
                panel=StatePanel(state=ViewState.ERROR, message=NO_COLUMNS_MESSAGE),
            )
        return replace(super()._render_frame(), header=self.header())


__all__ = [
    "HeaderCell",
    "ItemSize",
    "RenderFrame",
    "RenderedRow",
    "VirtualTable",
    "WindowedRenderer",
    "compute_visible_range",
    "is_activation_key",
]
