"""Fire-and-forget tasks whose failures end up in the log."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable

from .logging import get_logger

logger = get_logger("tasks")


def log_task_failure(task: "asyncio.Future[Any]") -> None:
    """Done-callback logging the exception of a background task, if any."""

    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background task failed: %r", exc, exc_info=exc)


def spawn(awaitable: Awaitable[Any]) -> "asyncio.Future[Any]":
    """Schedule *awaitable* on the running loop and log it if it fails."""

    task = asyncio.ensure_future(awaitable)
    task.add_done_callback(log_task_failure)
    return task


__all__ = ["log_task_failure", "spawn"]
