"""Column definitions for virtualized tables."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from ...errors import ConfigurationError

T = TypeVar("T")

CellRenderer = Callable[[Any, Any, int], Any]
"""``render(value, row, index) -> displayable``."""


class Align(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


def cell_value(row: Any, key: str) -> Any:
    """Read *key* from a mapping or an object; missing keys yield ``""``."""

    if isinstance(row, Mapping):
        return row.get(key, "")
    return getattr(row, key, "")


@dataclass(frozen=True)
class ColumnDef(Generic[T]):
    key: str
    header: str
    width: Optional[int] = None
    align: Align = Align.LEFT
    render: Optional[CellRenderer] = None
    min_width: Optional[int] = None
    max_width: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.key:
            raise ConfigurationError("Column key must not be empty")
        object.__setattr__(self, "align", Align(self.align))
        for name in ("width", "min_width", "max_width"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigurationError(f"Column {self.key!r}: {name} must be positive")
        if (
            self.min_width is not None
            and self.max_width is not None
            and self.min_width > self.max_width
        ):
            raise ConfigurationError(f"Column {self.key!r}: min_width exceeds max_width")

    def value(self, row: T) -> Any:
        return cell_value(row, self.key)

    def display(self, row: T, index: int) -> Any:
        """Rendered cell content; the raw value when no renderer is set."""

        value = self.value(row)
        if self.render is None:
            return value
        return self.render(value, row, index)

    def resolved_width(self, fallback: int) -> int:
        """Width clamped into ``[min_width, max_width]``."""

        width = self.width if self.width is not None else fallback
        if self.min_width is not None:
            width = max(width, self.min_width)
        if self.max_width is not None:
            width = min(width, self.max_width)
        return width


def total_width(columns: Sequence[ColumnDef], fallback: int = 150) -> int:
    return sum(column.resolved_width(fallback) for column in columns)


__all__ = ["Align", "CellRenderer", "ColumnDef", "cell_value", "total_width"]
