"""Timing and virtualization statistics for rendering work.

Measurements are only collected while the monitor is enabled, so the
decorators and context managers can stay in production code paths.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, TypeVar

from PySide6.QtCore import QObject, Signal

from ..core.aggregator import nearest_rank_index

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SAMPLE_WINDOW = 100


@dataclass(frozen=True)
class VirtualizationSample:
    total_items: int
    rendered_items: int

    @property
    def ratio(self) -> float:
        """Share of the dataset that was materialized, in ``[0, 1]``."""

        if self.total_items <= 0:
            return 0.0
        return self.rendered_items / self.total_items


class PerformanceMonitor(QObject):
    """Collect rolling timings per operation name.

    Emits :attr:`slowOperationDetected` with ``(operation, duration_ms)``
    whenever a measurement exceeds the slow threshold.
    """

    slowOperationDetected = Signal(str, float)

    def __init__(
        self,
        enabled: bool = False,
        slow_threshold_ms: float = 16.0,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        super().__init__()
        self._enabled = enabled
        self._slow_threshold_ms = slow_threshold_ms
        self._clock = clock
        self._metrics: Dict[str, Deque[float]] = {}
        self._operation_counts: Dict[str, int] = {}
        self._virtualization: Optional[VirtualizationSample] = None

    def enable(self, enabled: bool = True) -> None:
        self._enabled = enabled

    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def slow_threshold_ms(self) -> float:
        return self._slow_threshold_ms

    # ------------------------------------------------------------------
    # Measuring
    # ------------------------------------------------------------------
    def measure(self, operation: str) -> Callable[[F], F]:
        """Decorator timing every call of the wrapped function.

        Example::

            @performance_monitor.measure("table.render")
            def render(self):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                with self.measure_block(operation):
                    return func(*args, **kwargs)

            return wrapper  # type: ignore[return-value]

        return decorator

    @contextmanager
    def measure_block(self, operation: str) -> Iterator[None]:
        if not self._enabled:
            yield
            return
        start = self._clock()
        try:
            yield
        finally:
            self.record(operation, (self._clock() - start) * 1000.0)

    def record(self, operation: str, elapsed_ms: float) -> None:
        """Store one timing in milliseconds."""

        samples = self._metrics.get(operation)
        if samples is None:
            samples = self._metrics[operation] = deque(maxlen=SAMPLE_WINDOW)
            self._operation_counts[operation] = 0
        samples.append(elapsed_ms)
        self._operation_counts[operation] += 1
        if elapsed_ms > self._slow_threshold_ms:
            logger.debug("Slow operation %s took %.2fms", operation, elapsed_ms)
            self.slowOperationDetected.emit(operation, elapsed_ms)

    def record_virtualization(self, total_items: int, rendered_items: int) -> None:
        if self._enabled:
            self._virtualization = VirtualizationSample(max(0, total_items), max(0, rendered_items))

    @property
    def virtualization(self) -> Optional[VirtualizationSample]:
        return self._virtualization

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------
    def get_stats(self, operation: str) -> Optional[Dict[str, float]]:
        """Return count, total_count, mean, min, max, p50, p95 and p99 in ms."""

        samples = self._metrics.get(operation)
        if not samples:
            return None
        timings = sorted(samples)
        return {
            "count": len(timings),
            "total_count": self._operation_counts.get(operation, 0),
            "mean": sum(timings) / len(timings),
            "min": timings[0],
            "max": timings[-1],
            "p50": self._percentile(timings, 50),
            "p95": self._percentile(timings, 95),
            "p99": self._percentile(timings, 99),
        }

    def get_all_stats(self) -> Dict[str, Dict[str, float]]:
        return {
            operation: stats
            for operation in self._metrics
            if (stats := self.get_stats(operation)) is not None
        }

    def log_report(self, level: int = logging.INFO) -> None:
        if not self._metrics:
            logger.log(level, "No performance data collected.")
            return
        for operation in sorted(self._metrics):
            stats = self.get_stats(operation)
            if stats is None:
                continue
            logger.log(
                level,
                "%s: n=%d mean=%.2fms p50=%.2fms p95=%.2fms max=%.2fms",
                operation,
                stats["count"],
                stats["mean"],
                stats["p50"],
                stats["p95"],
                stats["max"],
            )
        if self._virtualization is not None:
            logger.log(
                level,
                "virtualization: %d of %d items rendered",
                self._virtualization.rendered_items,
                self._virtualization.total_items,
            )

    def reset(self) -> None:
        self._metrics.clear()
        self._operation_counts.clear()
        self._virtualization = None

    @staticmethod
    def _percentile(sorted_timings: List[float], p: int) -> float:
        return sorted_timings[nearest_rank_index(len(sorted_timings), p)]


# Shared instance; call ``performance_monitor.enable(True)`` while profiling.
performance_monitor = PerformanceMonitor(enabled=False)


__all__ = ["PerformanceMonitor", "VirtualizationSample", "performance_monitor"]
