"""Range bookkeeping and scroll-driven loading."""

from .infinite_loader import InfiniteLoadController
from .ranges import LoadRange, RangeSet

__all__ = ["InfiniteLoadController", "LoadRange", "RangeSet"]
