"""Per-dataset ownership of chunk caches and aggregation memos.

Each logical dataset is addressed by an explicit, caller-supplied query key.
The registry creates the store and aggregator for a key, clears them when the
key is invalidated and tears them down when the owning view goes away.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Hashable, Iterator, List, Optional, TypeVar

from ..config import ViewOptions
from ..core.aggregator import DataAggregator
from .chunk_store import VirtualDataStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

StoreFactory = Callable[[Hashable, ViewOptions], VirtualDataStore]


@dataclass
class DatasetSession(Generic[T]):
    """Caches owned by one dataset key."""

    key: Hashable
    store: VirtualDataStore[T]
    aggregator: DataAggregator[T]
    generation: int = 0
    disposed: bool = False
    _teardown: List[Callable[[], None]] = field(default_factory=list, repr=False)

    def on_teardown(self, callback: Callable[[], None]) -> None:
        """Run *callback* whenever this session is invalidated or disposed.

        Controllers and pagination managers bound to the dataset register
        their ``reset``/``dispose`` here so stale requests are abandoned
        together with the caches.
        """

        self._teardown.append(callback)

    def invalidate(self) -> None:
        self.generation += 1
        self.store.reset()
        self.aggregator.clear()
        for callback in list(self._teardown):
            callback()

    def dispose(self) -> None:
        if self.disposed:
            return
        self.invalidate()
        self._teardown.clear()
        self.disposed = True


class DatasetRegistry:
    """Create, invalidate and dispose dataset sessions by key."""

    def __init__(self, store_factory: StoreFactory, options: Optional[ViewOptions] = None) -> None:
        self._store_factory = store_factory
        self._options = options or ViewOptions()
        self._sessions: Dict[Hashable, DatasetSession] = {}

    def create(self, key: Hashable) -> DatasetSession:
        """Create a fresh session for *key*, disposing any previous one."""

        previous = self._sessions.pop(key, None)
        if previous is not None:
            previous.dispose()
        session = DatasetSession(
            key=key,
            store=self._store_factory(key, self._options),
            aggregator=DataAggregator(),
        )
        self._sessions[key] = session
        logger.debug("Created dataset session for %r", key)
        return session

    def get(self, key: Hashable) -> Optional[DatasetSession]:
        return self._sessions.get(key)

    def get_or_create(self, key: Hashable) -> DatasetSession:
        session = self._sessions.get(key)
        return session if session is not None else self.create(key)

    def invalidate(self, key: Hashable) -> bool:
        """Clear the caches of *key* while keeping the session alive."""

        session = self._sessions.get(key)
        if session is None:
            return False
        session.invalidate()
        logger.debug("Invalidated dataset session for %r", key)
        return True

    def dispose(self, key: Hashable) -> bool:
        session = self._sessions.pop(key, None)
        if session is None:
            return False
        session.dispose()
        logger.debug("Disposed dataset session for %r", key)
        return True

    def dispose_all(self) -> None:
        for key in list(self._sessions):
            self.dispose(key)

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._sessions))


__all__ = ["DatasetRegistry", "DatasetSession", "StoreFactory"]
