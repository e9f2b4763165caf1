# services/habit_service.py

import asyncio
import logging
from typing import List, Optional

from pydantic import ValidationError

from core.exceptions import StoreError
from core.remote_store import RemoteStore
from models.habit import Habit
from shared.models import HabitPatch

logger = logging.getLogger(__name__)


class HabitSet:
    """
    Today's habits of one owner, cached in memory.

    The cache is only ever replaced by a full refetch from the store. Every
    mutation writes to the store first and then patches the cache (toggle,
    delete) or refetches it (create, to pick up the canonical order).

    All mutations hold ``lock``. The rollover engine holds the same lock for
    the whole check and uses the ``*_locked`` methods meanwhile.
    """

    def __init__(self, owner_id: str, store: RemoteStore):
        self.owner_id = owner_id
        self.store = store
        self.lock = asyncio.Lock()
        self.habits: List[Habit] = []

    # ===== metrics =====

    @property
    def total_count(self) -> int:
        return len(self.habits)

    @property
    def completed_count(self) -> int:
        return sum(1 for habit in self.habits if habit.is_completed)

    @property
    def completion_percentage(self) -> float:
        """Share of completed habits in [0, 1]; 0 for an empty set"""
        if not self.habits:
            return 0.0
        return self.completed_count / self.total_count

    def get(self, habit_id: str) -> Optional[Habit]:
        for habit in self.habits:
            if habit.id == habit_id:
                return habit
        return None

    # ===== refetch =====

    async def refresh(self) -> List[Habit]:
        async with self.lock:
            return await self.refresh_locked()

    async def refresh_locked(self) -> List[Habit]:
        """Caller must hold ``lock``"""
        habits = await self.store.select_habits(self.owner_id)
        foreign = [h for h in habits if h.owner_id != self.owner_id]
        if foreign:
            logger.warning(f"⚠️ Dropped {len(foreign)} habits not owned by {self.owner_id}")
        self.habits = [h for h in habits if h.owner_id == self.owner_id]
        logger.debug(f"📥 Loaded {len(self.habits)} habits for {self.owner_id}")
        return self.habits

    # ===== mutations =====

    async def create(self, title: str) -> Habit:
        if not title or not title.strip():
            raise ValueError("Habit title must not be empty")
        try:
            title = HabitPatch(title=title).title
        except ValidationError as e:
            raise ValueError(f"Invalid habit title: {e.errors()[0]['msg']}") from e
        habit = Habit.new(self.owner_id, title)
        async with self.lock:
            await self.store.insert_habit(habit)
            await self.refresh_locked()
        logger.info(f"✅ Habit created for {self.owner_id}: {habit.title}")
        return self.get(habit.id) or habit

    async def set_completed(self, habit_id: str, is_completed: bool) -> None:
        async with self.lock:
            await self._write_completed(habit_id, is_completed)

    async def toggle(self, habit_id: str) -> Optional[bool]:
        """Flip one habit; returns the new state, None when the habit is unknown"""
        async with self.lock:
            habit = self.get(habit_id)
            if habit is None:
                logger.warning(f"⚠️ Habit {habit_id} not found for {self.owner_id}")
                return None
            new_state = not habit.is_completed
            await self._write_completed(habit_id, new_state)
            return new_state

    async def delete(self, habit_id: str) -> None:
        async with self.lock:
            await self.store.delete_habit(habit_id)
            self.habits = [h for h in self.habits if h.id != habit_id]
        logger.info(f"🗑️ Habit {habit_id} deleted for {self.owner_id}")

    async def _write_completed(self, habit_id: str, is_completed: bool) -> None:
        patch = HabitPatch(is_completed=is_completed).to_payload()
        await self.store.update_habit(habit_id, patch)
        habit = self.get(habit_id)
        if habit is not None:
            habit.is_completed = is_completed

    async def reset_all_locked(self) -> None:
        """
        Mark every habit incomplete, then refetch and verify.

        Caller must hold ``lock``. Raises StoreError when the refetched set
        still contains completed habits.
        """
        await self.refresh_locked()
        logger.info(f"🔄 Resetting habits for {self.owner_id}: "
                    f"{self.completed_count}/{self.total_count} completed before reset")
        for habit in list(self.habits):
            await self._write_completed(habit.id, False)

        await self.refresh_locked()
        still_completed = [h.id for h in self.habits if h.is_completed]
        if still_completed:
            raise StoreError(f"Reset not confirmed for habits {still_completed}")
        logger.info(f"✅ Habits reset for {self.owner_id} ({self.total_count} habits)")
