from __future__ import annotations

from dataclasses import dataclass

import pytest

from flowview.config import ViewOptions
from flowview.errors import ConfigurationError
from flowview.gui.performance_monitor import PerformanceMonitor
from flowview.gui.virtual.columns import Align, ColumnDef, cell_value
from flowview.gui.virtual.view_state import ViewState
from flowview.gui.virtual.window import NO_COLUMNS_MESSAGE, VirtualTable
from flowview.utils.formatters import format_bytes


@dataclass
class _Request:
    client_ip: str
    status: int
    received_bytes: int


COLUMNS = [
    ColumnDef("client_ip", "Client IP", width=160),
    ColumnDef("status", "Status", width=80, align=Align.CENTER),
    ColumnDef(
        "received_bytes",
        "Received",
        align="right",
        render=lambda value, row, index: format_bytes(value),
        min_width=90,
    ),
]


def _rows(count: int):
    return [_Request(f"10.0.0.{i}", 200 if i % 3 else 502, 1024 * i) for i in range(count)]


def test_rows_are_rendered_through_columns(qapp) -> None:
    table = VirtualTable(_rows(500), COLUMNS, monitor=PerformanceMonitor())

    frame = table.render()

    assert frame.state is ViewState.CONTENT
    assert frame.rows[2].content == ("10.0.0.2", 200, "2 KB")
    assert [cell.header for cell in frame.header] == ["Client IP", "Status", "Received"]
    assert frame.header[2].width == 150
    assert frame.header[1].align is Align.CENTER
    # Row height defaults to the table size.
    assert frame.rows[1].offset == 48


def test_zero_columns_render_a_placeholder_panel(qapp) -> None:
    table = VirtualTable(_rows(10), [], monitor=PerformanceMonitor())

    frame = table.render()

    assert frame.state is ViewState.ERROR
    assert frame.panel.message == NO_COLUMNS_MESSAGE
    assert frame.rows == ()


def test_empty_table_message(qapp) -> None:
    table = VirtualTable([], COLUMNS, monitor=PerformanceMonitor())

    frame = table.render()

    assert frame.state is ViewState.EMPTY
    assert frame.panel.message == "No data available"
    assert len(frame.header) == 3


def test_row_activation_uses_row_callback(qapp) -> None:
    activated = []
    rows = _rows(5)
    table = VirtualTable(rows, COLUMNS, on_row_activate=lambda row, index: activated.append(index))

    table.handle_key(4, "Space")

    assert activated == [4]


def test_from_options_uses_table_defaults(qapp) -> None:
    table = VirtualTable.from_options(ViewOptions.for_table(overscan=0, height=96), COLUMNS)
    table.set_items(_rows(100))

    assert table.visible_range == (0, 2)
    assert table.total_width == 160 + 80 + 150


def test_cell_value_handles_mappings_and_objects() -> None:
    assert cell_value({"status": 404}, "status") == 404
    assert cell_value({"status": 404}, "missing") == ""
    assert cell_value(_Request("1.1.1.1", 200, 0), "client_ip") == "1.1.1.1"
    assert cell_value(_Request("1.1.1.1", 200, 0), "missing") == ""


def test_column_width_is_clamped() -> None:
    column = ColumnDef("a", "A", width=500, min_width=50, max_width=200)

    assert column.resolved_width(100) == 200
    assert ColumnDef("b", "B", min_width=120).resolved_width(100) == 120


@pytest.mark.parametrize(
    "kwargs",
    [
        {"key": ""},
        {"key": "a", "width": 0},
        {"key": "a", "min_width": 300, "max_width": 100},
        {"key": "a", "align": "justify"},
    ],
)
def test_invalid_columns(kwargs) -> None:
    with pytest.raises((ConfigurationError, ValueError)):
        ColumnDef(header="A", **kwargs)
