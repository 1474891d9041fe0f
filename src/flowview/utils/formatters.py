"""Cell formatters for byte counts, durations, percentages and timestamps."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional, Union

_BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_bytes(size: float) -> str:
    """Return *size* in binary units with at most two decimals, e.g. ``1.5 KB``."""

    if size <= 0:
        return "0 Bytes"
    value = float(size)
    exponent = 0
    while value >= 1024 and exponent < len(_BYTE_UNITS) - 1:
        value /= 1024
        exponent += 1
    scaled = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{scaled} {_BYTE_UNITS[exponent]}"


def format_duration(milliseconds: float) -> str:
    seconds = int(milliseconds // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def format_latency(milliseconds: float) -> str:
    """Compact request latency: ``850ms``, ``1.5s`` or ``2.0m``."""

    if milliseconds < 1000:
        return f"{_round_half_up(milliseconds)}ms"
    if milliseconds < 60000:
        return f"{milliseconds / 1000:.1f}s"
    return f"{milliseconds / 60000:.1f}m"


def format_percentage(value: float) -> str:
    return f"{_round_half_up(value)}%"


def format_date(value: Optional[Union[datetime, str]], fmt: str = DATE_FORMAT) -> str:
    """Format a datetime or ISO-8601 string; ``N/A`` for missing values."""

    if value is None or value == "":
        return "N/A"
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return "Invalid Date"
    return value.strftime(fmt)


__all__ = [
    "DATE_FORMAT",
    "format_bytes",
    "format_date",
    "format_duration",
    "format_latency",
    "format_percentage",
]
