from __future__ import annotations

from datetime import datetime

import pytest

from flowview.utils.formatters import (
    format_bytes,
    format_date,
    format_duration,
    format_latency,
    format_percentage,
)


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1048576, "1 MB"),
        (1234567890, "1.15 GB"),
    ],
)
def test_format_bytes(size, expected) -> None:
    assert format_bytes(size) == expected


@pytest.mark.parametrize(
    ("ms", "expected"),
    [(999, "0s"), (45_000, "45s"), (125_000, "2m 5s"), (3_780_000, "1h 3m")],
)
def test_format_duration(ms, expected) -> None:
    assert format_duration(ms) == expected


def test_format_latency() -> None:
    assert format_latency(850) == "850ms"
    assert format_latency(1500) == "1.5s"
    assert format_latency(120_000) == "2.0m"


def test_format_percentage_rounds_half_up() -> None:
    assert format_percentage(12.5) == "13%"
    assert format_percentage(99.4) == "99%"


def test_format_date() -> None:
    assert format_date(None) == "N/A"
    assert format_date("not a date") == "Invalid Date"
    assert format_date(datetime(2024, 3, 1, 12, 30, 5)) == "2024-03-01 12:30:05"
    assert format_date("2024-03-01T12:30:05") == "2024-03-01 12:30:05"
