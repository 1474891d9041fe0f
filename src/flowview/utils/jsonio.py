"""Read and atomically write the JSON files that hold view options."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Optional, Union

from ..errors import ConfigurationError

PathLike = Union[str, Path]

_REPLACE_ATTEMPTS = 5


def read_json(path: PathLike, *, missing_ok: bool = False) -> dict[str, Any]:
    """Return the JSON object stored at *path*.

    A missing file yields ``{}`` when *missing_ok* is set. Unreadable or
    non-object content raises :class:`ConfigurationError`.
    """

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        if missing_ok:
            return {}
        raise ConfigurationError(f"Options file not found: {path}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path} (line {exc.lineno})") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"Expected a JSON object in {path}, got {type(payload).__name__}")
    return payload


def _replace(tmp_path: Path, path: Path) -> None:
    # Windows can refuse the rename while another process has the target open.
    for attempt in range(_REPLACE_ATTEMPTS):
        try:
            tmp_path.replace(path)
            return
        except PermissionError:
            if attempt == _REPLACE_ATTEMPTS - 1:
                tmp_path.unlink(missing_ok=True)
                raise
            time.sleep(0.05 * (attempt + 1))


def atomic_write_text(path: PathLike, data: str) -> None:
    """Write *data* to a sibling temp file and swap it into place."""

    path = Path(path)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)
    with tmp_path.open("w", encoding="utf-8") as handle:
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())
    _replace(tmp_path, path)


def write_json(path: PathLike, data: dict[str, Any], *, backup: bool = False) -> Optional[Path]:
    """Atomically write *data* as JSON.

    With *backup* set, the previous file is kept next to it as ``<name>.bak``
    and that path is returned.
    """

    path = Path(path)
    backup_path: Optional[Path] = None
    if backup and path.exists():
        backup_path = path.with_suffix(path.suffix + ".bak")
        backup_path.write_bytes(path.read_bytes())
    atomic_write_text(path, json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True))
    return backup_path


__all__ = ["atomic_write_text", "read_json", "write_json"]
