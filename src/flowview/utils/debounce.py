"""Trailing-edge debounce on top of the asyncio event loop."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Optional, Tuple

from .tasks import spawn


class Debouncer:
    """Invoke *callback* once calls have stopped for *delay_ms* milliseconds.

    Only the arguments of the last call are delivered. A callback returning a
    coroutine is scheduled as a task, available as :attr:`last_task`; its
    failure is logged rather than lost.
    """

    def __init__(self, callback: Callable[..., Any], delay_ms: int = 50) -> None:
        self._callback = callback
        self._delay_ms = max(0, int(delay_ms))
        self._handle: Optional[asyncio.TimerHandle] = None
        self._args: Tuple[Any, ...] = ()
        self.last_task: Optional[asyncio.Task] = None

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    @delay_ms.setter
    def delay_ms(self, value: int) -> None:
        self._delay_ms = max(0, int(value))

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any) -> None:
        self.cancel()
        self._args = args
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay_ms / 1000.0, self._fire)

    def flush(self) -> Optional[asyncio.Task]:
        """Deliver a pending call immediately."""

        if self._handle is None:
            return None
        self._handle.cancel()
        self._fire()
        return self.last_task

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        args, self._args = self._args, ()
        result = self._callback(*args)
        if inspect.isawaitable(result):
            self.last_task = spawn(result)


__all__ = ["Debouncer"]
