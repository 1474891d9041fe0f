"""Aggregation, batching and in-memory data helpers."""

from .aggregator import DataAggregator
from .batching import AsyncioYield, QtEventsYield, TimeSliceYield, process_batches
from .transform import MemoizedTransformer, create_chunks, efficient_filter, window_slice

__all__ = [
    "AsyncioYield",
    "DataAggregator",
    "MemoizedTransformer",
    "QtEventsYield",
    "TimeSliceYield",
    "create_chunks",
    "efficient_filter",
    "process_batches",
    "window_slice",
]
