from __future__ import annotations

import json

import pytest

from flowview.config import PaginationMode, ViewOptions
from flowview.errors import ConfigurationError


def test_documented_defaults() -> None:
    options = ViewOptions()

    assert options.height == 400
    assert options.item_size == 72
    assert options.overscan == 5
    assert options.chunk_size == 1000
    assert options.max_cached_chunks == 10
    assert options.batch_size == 1000
    assert options.debounce_ms == 50
    assert options.mode is PaginationMode.DISCRETE
    assert options.page_size == 50
    assert options.loading_item_count == 10
    assert options.empty_message == "No items to display"


def test_table_defaults() -> None:
    options = ViewOptions.for_table()

    assert options.item_size == 48
    assert options.empty_message == "No data available"
    assert ViewOptions.for_table(item_size=32).item_size == 32


@pytest.mark.parametrize(
    "changes",
    [
        {"item_size": 0},
        {"chunk_size": -1},
        {"overscan": -1},
        {"max_cached_chunks": 0},
        {"batch_size": True},
        {"mode": "endless"},
    ],
)
def test_invalid_values_raise(changes) -> None:
    with pytest.raises(ConfigurationError):
        ViewOptions(**changes)


def test_mode_accepts_string() -> None:
    assert ViewOptions(mode="infinite").mode is PaginationMode.INFINITE


def test_from_settings_coerces_and_falls_back() -> None:
    stored = {
        "view.overscan": "8",
        "view.item_size": 40.4,
        "view.chunk_size": "lots",
        "view.mode": " Infinite ",
        "view.debounce_ms": -5,
    }

    options = ViewOptions.from_settings(stored)

    assert options.overscan == 8
    assert options.item_size == 40
    assert options.chunk_size == 1000
    assert options.mode is PaginationMode.INFINITE
    assert options.debounce_ms == 50


def test_from_settings_uses_supplied_defaults() -> None:
    options = ViewOptions.from_settings({}, defaults=ViewOptions.for_table())

    assert options.item_size == 48


def test_json_round_trip_is_atomic(tmp_path) -> None:
    path = tmp_path / "prefs" / "view.json"
    options = ViewOptions(overscan=2, mode=PaginationMode.INFINITE)

    options.save_json(path)

    assert json.loads(path.read_text(encoding="utf-8"))["mode"] == "infinite"
    assert not path.with_suffix(".json.tmp").exists()
    assert ViewOptions.from_json(path) == options


def test_from_json_reports_bad_files(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        ViewOptions.from_json(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ViewOptions.from_json(broken)

    listing = tmp_path / "list.json"
    listing.write_text("[]", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ViewOptions.from_json(listing)


def test_from_mapping_ignores_unknown_keys() -> None:
    options = ViewOptions.from_mapping({"overscan": 1, "theme": "dark"})

    assert options.overscan == 1


def test_missing_file_can_fall_back_to_defaults(tmp_path) -> None:
    assert ViewOptions.from_json(tmp_path / "absent.json", missing_ok=True) == ViewOptions()


def test_save_json_keeps_a_backup_of_the_previous_file(tmp_path) -> None:
    path = tmp_path / "view.json"
    assert ViewOptions(overscan=1).save_json(path, backup=True) is None

    backup = ViewOptions(overscan=7).save_json(path, backup=True)

    assert backup == tmp_path / "view.json.bak"
    assert ViewOptions.from_json(backup).overscan == 1
    assert ViewOptions.from_json(path).overscan == 7
