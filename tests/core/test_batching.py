from __future__ import annotations

import pytest

from flowview.core.batching import AsyncioYield, QtEventsYield, TimeSliceYield, process_batches
from flowview.errors import ConfigurationError


class _CountingYield:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1


@pytest.mark.asyncio
async def test_results_match_single_pass_and_progress_increases() -> None:
    data = list(range(10))
    progress: list[tuple[int, int]] = []
    yielder = _CountingYield()

    result = await process_batches(
        data,
        3,
        lambda batch: [value * 2 for value in batch],
        lambda done, total: progress.append((done, total)),
        yielder=yielder,
    )

    assert result == [value * 2 for value in data]
    assert progress == [(3, 10), (6, 10), (9, 10), (10, 10)]
    # One pause between each pair of slices, none after the last one.
    assert yielder.calls == 3


@pytest.mark.asyncio
async def test_empty_input_never_calls_processor() -> None:
    calls = []

    result = await process_batches([], 5, lambda batch: calls.append(batch) or batch)

    assert result == []
    assert calls == []


@pytest.mark.asyncio
async def test_non_positive_batch_size_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        await process_batches([1, 2, 3], 0, list)


@pytest.mark.asyncio
async def test_processor_errors_propagate() -> None:
    def explode(batch):
        if 4 in batch:
            raise ValueError("bad row")
        return list(batch)

    with pytest.raises(ValueError, match="bad row"):
        await process_batches(list(range(6)), 2, explode, yielder=AsyncioYield())


@pytest.mark.asyncio
async def test_processor_may_change_result_length() -> None:
    result = await process_batches(list(range(7)), 2, lambda batch: [sum(batch)])

    assert result == [1, 5, 9, 6]


@pytest.mark.asyncio
async def test_time_slice_yield_only_pauses_after_budget() -> None:
    now = [0.0]
    inner = _CountingYield()
    yielder = TimeSliceYield(budget_ms=10, inner=inner, clock=lambda: now[0])

    await yielder()
    assert inner.calls == 0

    now[0] = 0.011
    await yielder()
    assert inner.calls == 1
    assert yielder.yield_count == 1

    now[0] = 0.015
    await yielder()
    assert inner.calls == 1


@pytest.mark.asyncio
async def test_qt_events_yield_drains_events(qapp) -> None:
    from PySide6.QtCore import QTimer

    fired = []
    QTimer.singleShot(0, lambda: fired.append(True))

    result = await process_batches(list(range(4)), 2, list, yielder=QtEventsYield())

    assert result == [0, 1, 2, 3]
    assert fired == [True]
