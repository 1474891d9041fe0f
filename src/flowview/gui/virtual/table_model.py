"""Expose a :class:`VirtualTable` to ``QTableView``."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Dict, Optional, Sequence

from PySide6.QtCore import QAbstractTableModel, QModelIndex, QObject, QSize, Qt

from .columns import Align
from ...utils.tasks import spawn
from .roles import ALIGNMENT_ROLE, DISPLAY_ROLE, SIZE_HINT_ROLE, Roles, role_names, role_value
from .view_state import SKELETON
from .window import VirtualTable, is_activation_key

_ALIGNMENT = {
    Align.LEFT: Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter,
    Align.CENTER: Qt.AlignmentFlag.AlignCenter,
    Align.RIGHT: Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter,
}


class VirtualTableModel(QAbstractTableModel):
    """Table model whose cells are produced by the table's column definitions."""

    def __init__(
        self,
        table: VirtualTable,
        *,
        load_more: Optional[Callable[[], Any]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._table = table
        self._load_more = load_more
        self.load_task: Optional[asyncio.Future] = None

    @property
    def table(self) -> VirtualTable:
        return self._table

    def rowCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        if parent is not None and parent.isValid():
            return 0
        return self._table.item_count

    def columnCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        if parent is not None and parent.isValid():
            return 0
        return len(self._table.columns)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid():
            return None
        row, col = index.row(), index.column()
        columns = self._table.columns
        if not (0 <= row < self._table.item_count and 0 <= col < len(columns)):
            return None
        column = columns[col]
        role = role_value(role)
        placeholder = self._table.is_placeholder(row)
        if role == DISPLAY_ROLE:
            if placeholder:
                return SKELETON
            return column.display(self._table.item_at(row), row)
        if role == ALIGNMENT_ROLE:
            return _ALIGNMENT[column.align]
        if role == Roles.ITEM:
            return self._table.item_at(row)
        if role == Roles.INDEX:
            return row
        if role == Roles.IS_PLACEHOLDER:
            return placeholder
        if role == Roles.IS_SELECTED:
            return row == self._table.selected_index
        return None

    def headerData(self, section: int, orientation, role: int = Qt.DisplayRole):  # type: ignore[override]
        if orientation != Qt.Orientation.Horizontal:
            return None
        header = self._table.header()
        if not 0 <= section < len(header):
            return None
        cell = header[section]
        role = role_value(role)
        if role == DISPLAY_ROLE:
            return cell.header
        if role == ALIGNMENT_ROLE:
            return _ALIGNMENT[cell.align]
        if role == SIZE_HINT_ROLE:
            return QSize(cell.width, int(self._table.item_size(0)))
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return role_names(super().roleNames())

    def flags(self, index: QModelIndex):  # type: ignore[override]
        if not index.isValid() or self._table.is_placeholder(index.row()):
            return Qt.ItemFlag.NoItemFlags
        return Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable

    def canFetchMore(self, parent: QModelIndex = QModelIndex()) -> bool:  # type: ignore[override]
        if parent.isValid() or self._load_more is None:
            return False
        return self._table.has_next_page and not self._table.is_loading

    def fetchMore(self, parent: QModelIndex = QModelIndex()) -> None:  # type: ignore[override]
        if not self.canFetchMore(parent):
            return
        result = self._load_more()
        if inspect.isawaitable(result):
            self.load_task = spawn(result)

    def set_items(self, items: Sequence[Any]) -> None:
        self.beginResetModel()
        self._table.set_items(items)
        self.endResetModel()

    def set_loading(self, loading: bool, has_next_page: Optional[bool] = None) -> None:
        self.beginResetModel()
        self._table.set_loading(loading, has_next_page)
        self.endResetModel()

    def set_columns(self, columns: Sequence[Any]) -> None:
        self.beginResetModel()
        self._table.set_columns(columns)
        self.endResetModel()

    def activate(self, row: int) -> bool:
        previous = self._table.selected_index
        if not self._table.activate(row):
            return False
        last_column = max(0, self.columnCount() - 1)
        for changed in {previous, row}:
            if changed is not None and 0 <= changed < self._table.item_count:
                self.dataChanged.emit(
                    self.index(changed, 0), self.index(changed, last_column), [Roles.IS_SELECTED]
                )
        return True

    def handle_key(self, row: int, key: Any) -> bool:
        if not is_activation_key(key):
            return False
        return self.activate(row)


__all__ = ["VirtualTableModel"]
