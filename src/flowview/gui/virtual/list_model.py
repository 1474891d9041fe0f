"""Expose a :class:`WindowedRenderer` to Qt item views."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional, Sequence

from PySide6.QtCore import QAbstractListModel, QModelIndex, QObject, QSize, Qt

from ...utils.tasks import spawn
from .roles import DISPLAY_ROLE, SIZE_HINT_ROLE, Roles, role_names, role_value
from .view_state import SKELETON
from .window import WindowedRenderer, is_activation_key

logger = logging.getLogger(__name__)


class VirtualListModel(QAbstractListModel):
    """List model backed by a windowed renderer.

    Rows beyond the loaded items are loading placeholders. Qt views only
    request data for visible rows, so ``render_item`` runs for those alone.
    """

    def __init__(
        self,
        renderer: WindowedRenderer,
        *,
        load_more: Optional[Callable[[], Any]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._renderer = renderer
        self._load_more = load_more
        self.load_task: Optional[asyncio.Future] = None

    @property
    def renderer(self) -> WindowedRenderer:
        return self._renderer

    # ------------------------------------------------------------------
    # Qt model API
    # ------------------------------------------------------------------
    def rowCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        if parent is not None and parent.isValid():
            return 0
        return self._renderer.item_count

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < self._renderer.item_count):
            return None
        row = index.row()
        role = role_value(role)
        placeholder = self._renderer.is_placeholder(row)
        if role == DISPLAY_ROLE:
            if placeholder:
                return SKELETON
            return self._renderer.render_content(self._renderer.item_at(row), row)
        if role == Roles.ITEM:
            return self._renderer.item_at(row)
        if role == Roles.INDEX:
            return row
        if role == Roles.IS_PLACEHOLDER:
            return placeholder
        if role == Roles.IS_SELECTED:
            return row == self._renderer.selected_index
        if role == Roles.OFFSET:
            return self._renderer.item_offset(row)
        if role == SIZE_HINT_ROLE:
            return QSize(-1, int(self._renderer.item_size(row)))
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return role_names(super().roleNames())

    def flags(self, index: QModelIndex):  # type: ignore[override]
        if not index.isValid():
            return Qt.ItemFlag.NoItemFlags
        if self._renderer.is_placeholder(index.row()):
            return Qt.ItemFlag.NoItemFlags
        return Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable

    def canFetchMore(self, parent: QModelIndex = QModelIndex()) -> bool:  # type: ignore[override]
        if parent.isValid() or self._load_more is None:
            return False
        return self._renderer.has_next_page and not self._renderer.is_loading

    def fetchMore(self, parent: QModelIndex = QModelIndex()) -> None:  # type: ignore[override]
        if not self.canFetchMore(parent):
            return
        result = self._load_more()
        if inspect.isawaitable(result):
            self.load_task = spawn(result)

    # ------------------------------------------------------------------
    # Data updates
    # ------------------------------------------------------------------
    def set_items(self, items: Sequence[Any]) -> None:
        self.beginResetModel()
        self._renderer.set_items(items)
        self.endResetModel()

    def append_items(self, items: Sequence[Any]) -> None:
        if not items:
            return
        if self._renderer.placeholder_count:
            # Placeholder rows shift, so a reset is simpler than a move.
            self.beginResetModel()
            self._renderer.append_items(items)
            self.endResetModel()
            return
        first = self._renderer.item_count
        self.beginInsertRows(QModelIndex(), first, first + len(items) - 1)
        self._renderer.append_items(items)
        self.endInsertRows()

    def set_loading(self, loading: bool, has_next_page: Optional[bool] = None) -> None:
        before = self._renderer.item_count
        self.beginResetModel()
        self._renderer.set_loading(loading, has_next_page)
        self.endResetModel()
        logger.debug("Loading=%s, rows %d -> %d", loading, before, self._renderer.item_count)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------
    def activate(self, row: int) -> bool:
        previous = self._renderer.selected_index
        if not self._renderer.activate(row):
            return False
        for changed in {previous, row}:
            if changed is not None and 0 <= changed < self._renderer.item_count:
                model_index = self.index(changed, 0)
                self.dataChanged.emit(model_index, model_index, [Roles.IS_SELECTED])
        return True

    def handle_key(self, row: int, key: Any) -> bool:
        if not is_activation_key(key):
            return False
        return self.activate(row)


__all__ = ["VirtualListModel"]
