"""Chunk caches and their per-dataset lifecycle."""

from .chunk_store import CacheStats, Chunk, RangeResult, VirtualDataStore
from .registry import DatasetRegistry, DatasetSession

__all__ = [
    "CacheStats",
    "Chunk",
    "DatasetRegistry",
    "DatasetSession",
    "RangeResult",
    "VirtualDataStore",
]
