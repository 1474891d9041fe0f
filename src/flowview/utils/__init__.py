"""Utility helpers for flowview."""

from .formatters import (
    format_bytes,
    format_date,
    format_duration,
    format_latency,
    format_percentage,
)
from .logging import get_logger, set_debug
from .tasks import spawn

__all__ = [
    "format_bytes",
    "format_date",
    "format_duration",
    "format_latency",
    "format_percentage",
    "get_logger",
    "set_debug",
    "spawn",
]
