from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import OWNER
from models.history import CompletionHistory
from services.history_service import HistoryRecorder


@pytest.mark.asyncio
async def test_record_snapshot_always_appends(recorder, store):
    await recorder.record_snapshot(OWNER, date(2025, 2, 3), 0.5)
    await recorder.record_snapshot(OWNER, date(2025, 2, 3), 0.75)

    assert store.history_for(OWNER) == {date(2025, 2, 3): [0.5, 0.75]}


@pytest.mark.asyncio
@pytest.mark.parametrize("percentage", [-0.1, 1.01])
async def test_record_snapshot_rejects_out_of_range(recorder, store, percentage):
    with pytest.raises(ValueError):
        await recorder.record_snapshot(OWNER, date(2025, 2, 3), percentage)
    assert store.history == []


@pytest.mark.asyncio
async def test_query_range_is_sorted_and_half_open(recorder):
    for day in (5, 1, 3, 10):
        await recorder.record_snapshot(OWNER, date(2025, 2, day), day / 10)
    await recorder.record_snapshot("other", date(2025, 2, 2), 1.0)

    rows = await recorder.query_range(OWNER, date(2025, 2, 1), date(2025, 2, 10))

    assert [row.date.day for row in rows] == [1, 3, 5]


@pytest.mark.asyncio
async def test_get_month(recorder):
    await recorder.record_snapshot(OWNER, date(2025, 1, 31), 1.0)
    await recorder.record_snapshot(OWNER, date(2025, 2, 1), 0.2)
    await recorder.record_snapshot(OWNER, date(2025, 2, 28), 0.4)
    await recorder.record_snapshot(OWNER, date(2025, 3, 1), 0.6)

    rows = await recorder.get_month(OWNER, date(2025, 2, 14))

    assert [row.date for row in rows] == [date(2025, 2, 1), date(2025, 2, 28)]


@pytest.mark.asyncio
async def test_get_for_date(recorder):
    await recorder.record_snapshot(OWNER, date(2025, 2, 3), 0.3)

    found = await recorder.get_for_date(OWNER, date(2025, 2, 3))
    missing = await recorder.get_for_date(OWNER, date(2025, 2, 4))

    assert found.completion_percentage == 0.3
    assert missing is None


def test_completion_map_keeps_earliest_duplicate():
    created = datetime(2025, 2, 4, tzinfo=timezone.utc)
    day = date(2025, 2, 3)
    rows = [
        CompletionHistory("b", OWNER, day, 0.9, created + timedelta(hours=1)),
        CompletionHistory("a", OWNER, day, 0.5, created),
        CompletionHistory("c", OWNER, date(2025, 2, 4), 0.0, created),
    ]

    assert HistoryRecorder.completion_map(rows) == {day: 0.5, date(2025, 2, 4): 0.0}
