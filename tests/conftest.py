import asyncio
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from core.exceptions import StoreError
from core.remote_store import RemoteStore
from database.manager import LocalSettings
from models.habit import Habit
from models.history import CompletionHistory
from services.habit_service import HabitSet
from services.history_service import HistoryRecorder
from services.rollover_service import RolloverEngine
from utils.datetime_utils import Clock

OWNER = "owner-1"
DAY0 = date(2025, 2, 3)


class FakeStore(RemoteStore):
    """In-memory RemoteStore that records writes and can fail or pause on demand"""

    def __init__(self):
        self.habits: Dict[str, Habit] = {}
        self.history: List[CompletionHistory] = []
        self.writes: List[tuple] = []
        # number of further successful calls before the operation starts failing
        self.fail_after: Dict[str, int] = {}
        # operation name -> event that must be set before the call proceeds
        self.gates: Dict[str, asyncio.Event] = {}
        self.entered: Dict[str, asyncio.Event] = {}

    async def _enter(self, operation: str):
        if operation in self.entered:
            self.entered[operation].set()
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()
        remaining = self.fail_after.get(operation)
        if remaining is not None:
            if remaining <= 0:
                raise StoreError(f"{operation} unavailable")
            self.fail_after[operation] = remaining - 1

    def seed(self, owner_id: str, completed: List[bool]) -> List[Habit]:
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        habits = []
        for i, is_completed in enumerate(completed):
            habit = Habit(
                id=f"h{i}",
                owner_id=owner_id,
                title=f"Habit {i}",
                is_completed=is_completed,
                created_at=base + timedelta(minutes=i),
            )
            self.habits[habit.id] = habit
            habits.append(habit)
        return habits

    def history_for(self, owner_id: str) -> Dict[date, List[float]]:
        result: Dict[date, List[float]] = {}
        for row in self.history:
            if row.owner_id == owner_id:
                result.setdefault(row.date, []).append(row.completion_percentage)
        return result

    async def select_habits(self, owner_id: str) -> List[Habit]:
        await self._enter("select_habits")
        habits = [replace(h) for h in self.habits.values() if h.owner_id == owner_id]
        return sorted(habits, key=lambda h: h.created_at)

    async def insert_habit(self, habit: Habit) -> None:
        await self._enter("insert_habit")
        self.habits[habit.id] = replace(habit)
        self.writes.append(("insert_habit", habit.id))

    async def update_habit(self, habit_id: str, patch: dict) -> None:
        await self._enter("update_habit")
        habit = self.habits.get(habit_id)
        if habit is not None and "is_completed" in patch:
            habit.is_completed = patch["is_completed"]
        self.writes.append(("update_habit", habit_id, dict(patch)))

    async def delete_habit(self, habit_id: str) -> None:
        await self._enter("delete_habit")
        self.habits.pop(habit_id, None)
        self.writes.append(("delete_habit", habit_id))

    async def select_history(self, owner_id: str, start: Optional[date] = None,
                             end: Optional[date] = None) -> List[CompletionHistory]:
        await self._enter("select_history")
        rows = [
            row for row in self.history
            if row.owner_id == owner_id
            and (start is None or row.date >= start)
            and (end is None or row.date < end)
        ]
        # the backend gives no ordering guarantee
        return list(reversed(rows))

    async def insert_history(self, record: CompletionHistory) -> None:
        await self._enter("insert_history")
        self.history.append(record)
        self.writes.append(("insert_history", record.date, record.completion_percentage))


class FixedClock(Clock):
    """Clock whose calendar day is set by the test"""

    def __init__(self, today: date):
        super().__init__("UTC")
        self.current = today

    def now(self) -> datetime:
        return datetime(self.current.year, self.current.month, self.current.day, 12, tzinfo=timezone.utc)

    def today(self) -> date:
        return self.current


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def settings(tmp_path):
    return LocalSettings(tmp_path / "settings.json")


@pytest.fixture
def clock():
    return FixedClock(DAY0)


@pytest.fixture
def habit_set(store):
    return HabitSet(OWNER, store)


@pytest.fixture
def recorder(store):
    return HistoryRecorder(store)


@pytest.fixture
def engine(settings, clock, recorder, habit_set):
    return RolloverEngine(settings, clock, recorder, lambda owner_id: habit_set)
