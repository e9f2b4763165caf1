# services/history_service.py

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from core.remote_store import RemoteStore
from models.history import CompletionHistory
from utils.datetime_utils import add_days, month_bounds

logger = logging.getLogger(__name__)


class HistoryRecorder:
    """
    Writes one completion snapshot per calendar day and reads them back for
    the calendar.

    ``record_snapshot`` always appends; it never checks for an existing row of
    the same day. Callers that must not duplicate a day check
    ``recorded_dates`` first, inside their own critical section.
    """

    def __init__(self, store: RemoteStore):
        self.store = store

    async def record_snapshot(self, owner_id: str, day: date, percentage: float) -> CompletionHistory:
        if not 0.0 <= percentage <= 1.0:
            raise ValueError(f"Completion percentage {percentage} is outside [0, 1]")

        record = CompletionHistory.new(owner_id, day, percentage)
        try:
            await self.store.insert_history(record)
        except Exception as e:
            logger.error(f"❌ Snapshot for {day.isoformat()} not saved ({owner_id}): {e}")
            raise

        logger.info(f"💾 Snapshot saved for {owner_id}: {day.isoformat()} -> {percentage * 100:.0f}%")
        return record

    async def query_range(self, owner_id: str, start: date, end: date) -> List[CompletionHistory]:
        """Rows with ``start <= date < end``, ascending by date"""
        rows = await self.store.select_history(owner_id, start, end)
        rows.sort(key=lambda row: (row.date, row.created_at))
        logger.debug(f"📊 {len(rows)} history rows for {owner_id} in [{start}, {end})")
        return rows

    async def recorded_dates(self, owner_id: str, start: date, end: date) -> Set[date]:
        rows = await self.store.select_history(owner_id, start, end)
        return {row.date for row in rows}

    async def get_for_date(self, owner_id: str, day: date) -> Optional[CompletionHistory]:
        rows = await self.query_range(owner_id, day, add_days(day, 1))
        return rows[0] if rows else None

    async def get_month(self, owner_id: str, day: date) -> List[CompletionHistory]:
        """All rows of the calendar month containing ``day``"""
        start, end = month_bounds(day)
        return await self.query_range(owner_id, start, end)

    @staticmethod
    def completion_map(rows: Iterable[CompletionHistory]) -> Dict[date, float]:
        """Day -> percentage; for duplicated days the earliest written row wins"""
        result: Dict[date, float] = {}
        for row in sorted(rows, key=lambda r: (r.date, r.created_at)):
            if row.date in result:
                logger.debug(f"Duplicate history row for {row.date.isoformat()} ignored")
                continue
            result[row.date] = row.completion_percentage
        return result
