"""Logging setup for the ``flowview`` package logger.

Modules log through ``logging.getLogger(__name__)``. This module owns the
handler and level of the package root, which can also be set through the
``FLOWVIEW_LOG_LEVEL`` environment variable.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

PACKAGE_LOGGER = "flowview"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LEVEL_ENV = "FLOWVIEW_LOG_LEVEL"

_configured = False


def _level_from_env(default: int = logging.INFO) -> int:
    name = os.environ.get(LEVEL_ENV, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or its child *name*.

    The first call attaches a stream handler unless the host application
    already configured one.
    """

    global _configured
    root = logging.getLogger(PACKAGE_LOGGER)
    if not _configured:
        if not root.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(handler)
        root.setLevel(_level_from_env())
        _configured = True
    return root.getChild(name) if name else root


def set_debug(enabled: bool = True) -> None:
    get_logger().setLevel(logging.DEBUG if enabled else logging.INFO)


logger = get_logger()
