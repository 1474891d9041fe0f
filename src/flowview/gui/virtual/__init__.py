"""Virtualized list and table rendering."""

from .columns import Align, ColumnDef
from .list_model import VirtualListModel
from .roles import Roles
from .table_model import VirtualTableModel
from .view_state import ViewState
from .window import RenderFrame, RenderedRow, VirtualTable, WindowedRenderer, compute_visible_range

__all__ = [
    "Align",
    "ColumnDef",
    "RenderFrame",
    "RenderedRow",
    "Roles",
    "ViewState",
    "VirtualListModel",
    "VirtualTable",
    "VirtualTableModel",
    "WindowedRenderer",
    "compute_visible_range",
]
