from __future__ import annotations

import pytest

from flowview.errors import ServerError
from flowview.io.page_fetcher import PageResult, PaginationState, SequencePageSource


def test_build_derives_navigation_flags() -> None:
    state = PaginationState.build(page=2, page_size=10, total=25)

    assert state.total_pages == 3
    assert state.has_next_page is True
    assert state.has_previous_page is True

    last = PaginationState.build(page=3, page_size=10, total=25)
    assert last.has_next_page is False


def test_from_payload_parses_rest_shape() -> None:
    payload = {
        "data": [{"id": 1}, {"id": 2}],
        "pagination": {
            "page": 1,
            "pageSize": 2,
            "total": 5,
            "totalPages": 3,
            "hasNextPage": False,
            "hasPreviousPage": True,
        },
    }

    result = PageResult.from_payload(payload)

    assert result.data == [{"id": 1}, {"id": 2}]
    assert result.pagination.total_pages == 3
    # Navigation flags are re-derived, never trusted.
    assert result.pagination.has_next_page is True
    assert result.pagination.has_previous_page is False
    assert result.is_last is False


def test_from_payload_accepts_snake_case_without_total_pages() -> None:
    state = PaginationState.from_payload({"page": 1, "page_size": 50, "total": 120})

    assert state.total_pages == 3


@pytest.mark.parametrize(
    "payload",
    [
        {"pagination": {"page": 1, "pageSize": 1, "total": 0}},
        {"data": [], "pagination": None},
        {"data": [], "pagination": {"page": "x", "pageSize": 1, "total": 0}},
        {"data": [], "pagination": {"pageSize": 1, "total": 0}},
    ],
)
def test_malformed_payloads_raise_server_error(payload) -> None:
    with pytest.raises(ServerError):
        PageResult.from_payload(payload)


@pytest.mark.asyncio
async def test_sequence_source_serves_one_based_pages() -> None:
    source = SequencePageSource(list(range(7)))

    first = await source(1, 3)
    beyond = await source(4, 3)

    assert first.data == [0, 1, 2]
    assert first.pagination.has_next_page is True
    assert beyond.data == []
    assert beyond.is_last
    assert source.calls == [(1, 3), (4, 3)]
    assert source.total == 7
