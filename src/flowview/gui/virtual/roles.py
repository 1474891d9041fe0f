"""Custom item-data roles exposed by the virtual models."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict

from PySide6.QtCore import Qt


def role_value(role: Any) -> int:
    """Plain integer for either an ``ItemDataRole`` member or an int."""

    return int(getattr(role, "value", role))


_USER_ROLE = role_value(Qt.ItemDataRole.UserRole)


class Roles(IntEnum):
    ITEM = _USER_ROLE + 1
    INDEX = _USER_ROLE + 2
    IS_PLACEHOLDER = _USER_ROLE + 3
    IS_SELECTED = _USER_ROLE + 4
    OFFSET = _USER_ROLE + 5


DISPLAY_ROLE = role_value(Qt.ItemDataRole.DisplayRole)
ALIGNMENT_ROLE = role_value(Qt.ItemDataRole.TextAlignmentRole)
SIZE_HINT_ROLE = role_value(Qt.ItemDataRole.SizeHintRole)


def role_names(base: Dict[int, bytes]) -> Dict[int, bytes]:
    names = dict(base)
    names.update(
        {
            Roles.ITEM: b"item",
            Roles.INDEX: b"index",
            Roles.IS_PLACEHOLDER: b"isPlaceholder",
            Roles.IS_SELECTED: b"isSelected",
            Roles.OFFSET: b"offset",
        }
    )
    return names


__all__ = ["ALIGNMENT_ROLE", "DISPLAY_ROLE", "Roles", "SIZE_HINT_ROLE", "role_names", "role_value"]
