"""Recognised view options and their documented defaults.

Callers rely on these defaults implicitly, so changing any of them is a
breaking change.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

from .errors import ConfigurationError
from .utils.jsonio import read_json, write_json


class PaginationMode(str, Enum):
    """Fetch strategy of a :class:`~flowview.pagination.PaginationManager`."""

    DISCRETE = "discrete"
    INFINITE = "infinite"


DEFAULT_HEIGHT = 400
DEFAULT_LIST_ITEM_SIZE = 72
DEFAULT_TABLE_ITEM_SIZE = 48
DEFAULT_OVERSCAN = 5
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_MAX_CACHED_CHUNKS = 10
DEFAULT_BATCH_SIZE = 1000
DEFAULT_DEBOUNCE_MS = 50
DEFAULT_PAGE_SIZE = 50
DEFAULT_LOADING_ITEM_COUNT = 10
DEFAULT_EMPTY_MESSAGE = "No items to display"

SETTINGS_PREFIX = "view."


class _Settings(Protocol):
    def get(self, key: str, default: Any = None) -> Any:
        ...


@dataclass(frozen=True)
class ViewOptions:
    """Options shared by the renderer, the caches and the pagination layer."""

    height: int = DEFAULT_HEIGHT
    item_size: int = DEFAULT_LIST_ITEM_SIZE
    overscan: int = DEFAULT_OVERSCAN
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_cached_chunks: int = DEFAULT_MAX_CACHED_CHUNKS
    batch_size: int = DEFAULT_BATCH_SIZE
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    mode: PaginationMode = PaginationMode.DISCRETE
    page_size: int = DEFAULT_PAGE_SIZE
    loading_item_count: int = DEFAULT_LOADING_ITEM_COUNT
    empty_message: str = DEFAULT_EMPTY_MESSAGE

    def __post_init__(self) -> None:
        try:
            mode = PaginationMode(self.mode)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown pagination mode: {self.mode!r}") from exc
        object.__setattr__(self, "mode", mode)

        for name in ("height", "item_size", "chunk_size", "max_cached_chunks", "batch_size", "page_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        for name in ("overscan", "debounce_ms", "loading_item_count"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")

    @classmethod
    def for_table(cls, **overrides: Any) -> "ViewOptions":
        """Return options with the table row height as the default item size."""

        overrides.setdefault("item_size", DEFAULT_TABLE_ITEM_SIZE)
        overrides.setdefault("empty_message", "No data available")
        return cls(**overrides)

    def with_changes(self, **changes: Any) -> "ViewOptions":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["mode"] = self.mode.value
        return payload

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ViewOptions":
        """Build options from *data*, ignoring unknown keys."""

        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    @classmethod
    def from_settings(cls, settings: _Settings, *, defaults: Optional["ViewOptions"] = None) -> "ViewOptions":
        """Read ``view.*`` keys from a settings store with tolerant coercion.

        Values that cannot be coerced fall back to the defaults instead of
        raising, mirroring how persisted preferences are restored.
        """

        base = defaults or cls()
        values: dict[str, Any] = {}
        for f in fields(cls):
            fallback = getattr(base, f.name)
            stored = settings.get(SETTINGS_PREFIX + f.name, fallback)
            if f.name == "mode":
                values[f.name] = _coerce_mode(stored, fallback)
            elif f.name == "empty_message":
                values[f.name] = str(stored) if stored is not None else fallback
            else:
                values[f.name] = _coerce_int(stored, fallback, minimum=0 if f.name in _NON_NEGATIVE else 1)
        return cls(**values)

    @classmethod
    def from_json(cls, path: Path, *, missing_ok: bool = False) -> "ViewOptions":
        """Load options from *path*; a missing file gives the defaults when *missing_ok*."""

        return cls.from_mapping(read_json(path, missing_ok=missing_ok))

    def save_json(self, path: Path, *, backup: bool = False) -> Optional[Path]:
        return write_json(path, self.to_dict(), backup=backup)


_NON_NEGATIVE = {"overscan", "debounce_ms", "loading_item_count"}


def _coerce_int(value: Any, fallback: int, *, minimum: int) -> int:
    if isinstance(value, bool):
        return fallback
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError):
        return fallback
    if number < minimum:
        return fallback
    return number


def _coerce_mode(value: Any, fallback: PaginationMode) -> PaginationMode:
    if isinstance(value, PaginationMode):
        return value
    if isinstance(value, str):
        try:
            return PaginationMode(value.strip().lower())
        except ValueError:
            return fallback
    return fallback


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_DEBOUNCE_MS",
    "DEFAULT_EMPTY_MESSAGE",
    "DEFAULT_HEIGHT",
    "DEFAULT_LIST_ITEM_SIZE",
    "DEFAULT_LOADING_ITEM_COUNT",
    "DEFAULT_MAX_CACHED_CHUNKS",
    "DEFAULT_OVERSCAN",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_TABLE_ITEM_SIZE",
    "PaginationMode",
    "ViewOptions",
]
