from __future__ import annotations

import logging

import pytest

from flowview.gui.performance_monitor import PerformanceMonitor


class _Clock:
    def __init__(self, *readings: float) -> None:
        self._readings = list(readings)

    def __call__(self) -> float:
        return self._readings.pop(0)


def test_disabled_monitor_records_nothing(qapp) -> None:
    monitor = PerformanceMonitor(enabled=False)

    @monitor.measure("render")
    def render(value):
        return value * 2

    assert render(21) == 42
    assert monitor.get_stats("render") is None
    monitor.record_virtualization(100, 10)
    assert monitor.virtualization is None


def test_measure_block_records_milliseconds(qapp) -> None:
    monitor = PerformanceMonitor(enabled=True, clock=_Clock(1.0, 1.005, 2.0, 2.010))

    with monitor.measure_block("render"):
        pass
    with monitor.measure_block("render"):
        pass

    stats = monitor.get_stats("render")
    assert stats["count"] == 2
    assert stats["total_count"] == 2
    assert stats["min"] == pytest.approx(5.0)
    assert stats["max"] == pytest.approx(10.0)
    assert stats["mean"] == pytest.approx(7.5)


def test_decorator_records_even_when_function_raises(qapp) -> None:
    monitor = PerformanceMonitor(enabled=True, clock=_Clock(0.0, 0.001))

    @monitor.measure("explode")
    def explode():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        explode()
    assert monitor.get_stats("explode")["count"] == 1


def test_slow_operations_emit_signal(qapp) -> None:
    monitor = PerformanceMonitor(enabled=True, slow_threshold_ms=16.0)
    slow = []
    monitor.slowOperationDetected.connect(lambda name, ms: slow.append((name, ms)))

    monitor.record("scroll", 4.0)
    monitor.record("scroll", 40.0)

    assert slow == [("scroll", 40.0)]


def test_percentiles_use_nearest_rank(qapp) -> None:
    monitor = PerformanceMonitor(enabled=True)
    for value in range(1, 101):
        monitor.record("fetch", float(value))

    stats = monitor.get_stats("fetch")

    assert stats["p50"] == 50.0
    assert stats["p95"] == 95.0
    assert stats["p99"] == 99.0


def test_sample_window_is_bounded(qapp) -> None:
    monitor = PerformanceMonitor(enabled=True, slow_threshold_ms=1e9)
    for value in range(250):
        monitor.record("fetch", float(value))

    stats = monitor.get_stats("fetch")

    assert stats["count"] == 100
    assert stats["total_count"] == 250
    assert stats["min"] == 150.0


def test_virtualization_ratio_and_report(qapp, caplog) -> None:
    monitor = PerformanceMonitor(enabled=True)
    monitor.record("render", 3.0)
    monitor.record_virtualization(200_000, 21)

    assert monitor.virtualization.ratio == pytest.approx(21 / 200_000)
    with caplog.at_level(logging.INFO, logger="flowview"):
        monitor.log_report()
    assert "render" in caplog.text
    assert "21 of 200000" in caplog.text

    monitor.reset()
    assert monitor.get_all_stats() == {}
    assert monitor.virtualization is None
