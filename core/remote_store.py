# core/remote_store.py

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from models.habit import Habit
from models.history import CompletionHistory


class RemoteStore(ABC):
    """
    Record store holding the ``habits`` and ``completion_history`` collections.

    Every read is scoped by owner id. Implementations raise StoreError for
    backend failures and AuthError when the backend rejects the session.
    """

    # ===== habits =====

    @abstractmethod
    async def select_habits(self, owner_id: str) -> List[Habit]:
        """All habits of the owner, oldest first"""

    @abstractmethod
    async def insert_habit(self, habit: Habit) -> None:
        pass

    @abstractmethod
    async def update_habit(self, habit_id: str, patch: dict) -> None:
        """Partial update of one habit; ``patch`` uses wire field names"""

    @abstractmethod
    async def delete_habit(self, habit_id: str) -> None:
        pass

    # ===== completion_history =====

    @abstractmethod
    async def select_history(self, owner_id: str, start: Optional[date] = None,
                             end: Optional[date] = None) -> List[CompletionHistory]:
        """Rows with ``start <= date < end``; either bound may be omitted. Order is not guaranteed."""

    @abstractmethod
    async def insert_history(self, record: CompletionHistory) -> None:
        pass

    async def close(self) -> None:
        """Release connections, if any"""
