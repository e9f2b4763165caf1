# database/json_store.py

import asyncio
import json
import logging
import threading
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from core.exceptions import StoreError
from core.remote_store import RemoteStore
from models.habit import Habit
from models.history import CompletionHistory

logger = logging.getLogger(__name__)


class JsonFileStore(RemoteStore):
    """
    Offline RemoteStore: one JSON document per owner.

    Layout of ``user_<owner_id>.json``::

        {"habits": {"<id>": {...}}, "completion_history": [{...}, ...]}

    Habit ids are global, so an index from habit id to owner is kept in memory
    and rebuilt from disk on start.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._habit_owner: Dict[str, str] = {}
        self._build_index()

    def _owner_file(self, owner_id: str) -> Path:
        return self.directory / f"user_{owner_id}.json"

    def _build_index(self):
        for file in self.directory.glob("user_*.json"):
            owner_id = file.stem[len("user_"):]
            for habit_id in self._read(owner_id).get("habits", {}):
                self._habit_owner[habit_id] = owner_id
        logger.debug(f"📂 JsonFileStore indexed {len(self._habit_owner)} habits in {self.directory}")

    def _read(self, owner_id: str) -> Dict[str, Any]:
        path = self._owner_file(owner_id)
        if not path.exists():
            return {"habits": {}, "completion_history": []}
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read {path}: {e}") from e

    def _write(self, owner_id: str, data: Dict[str, Any]) -> None:
        path = self._owner_file(owner_id)
        temp_file = path.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            temp_file.replace(path)
        except OSError as e:
            raise StoreError(f"Cannot write {path}: {e}") from e

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    # ===== habits =====

    def _select_habits(self, owner_id: str) -> List[Habit]:
        with self._lock:
            data = self._read(owner_id)
        try:
            habits = [Habit.from_dict(item) for item in data.get("habits", {}).values()]
        except ValidationError as e:
            raise StoreError(f"Corrupted habit record for {owner_id}: {e}") from e
        habits.sort(key=lambda h: h.created_at)
        return habits

    async def select_habits(self, owner_id: str) -> List[Habit]:
        return await self._run(self._select_habits, owner_id)

    def _insert_habit(self, habit: Habit) -> None:
        with self._lock:
            data = self._read(habit.owner_id)
            data.setdefault("habits", {})[habit.id] = habit.to_dict()
            self._write(habit.owner_id, data)
            self._habit_owner[habit.id] = habit.owner_id

    async def insert_habit(self, habit: Habit) -> None:
        await self._run(self._insert_habit, habit)
        logger.debug(f"💾 Habit {habit.id} stored for {habit.owner_id}")

    def _update_habit(self, habit_id: str, patch: dict) -> None:
        with self._lock:
            owner_id = self._habit_owner.get(habit_id)
            if owner_id is None:
                return
            data = self._read(owner_id)
            record = data.get("habits", {}).get(habit_id)
            if record is None:
                return
            for field_name, value in patch.items():
                if field_name in ("id", "user_id"):
                    continue
                record[field_name] = value
            self._write(owner_id, data)

    async def update_habit(self, habit_id: str, patch: dict) -> None:
        # matching zero rows is not an error, same as a filtered update on the server
        await self._run(self._update_habit, habit_id, patch)

    def _delete_habit(self, habit_id: str) -> None:
        with self._lock:
            owner_id = self._habit_owner.pop(habit_id, None)
            if owner_id is None:
                return
            data = self._read(owner_id)
            data.get("habits", {}).pop(habit_id, None)
            self._write(owner_id, data)

    async def delete_habit(self, habit_id: str) -> None:
        await self._run(self._delete_habit, habit_id)

    # ===== completion_history =====

    def _select_history(self, owner_id: str, start: Optional[date],
                        end: Optional[date]) -> List[CompletionHistory]:
        with self._lock:
            data = self._read(owner_id)
        try:
            rows = [CompletionHistory.from_dict(item) for item in data.get("completion_history", [])]
        except ValidationError as e:
            raise StoreError(f"Corrupted history record for {owner_id}: {e}") from e
        return [
            row for row in rows
            if (start is None or row.date >= start) and (end is None or row.date < end)
        ]

    async def select_history(self, owner_id: str, start: Optional[date] = None,
                             end: Optional[date] = None) -> List[CompletionHistory]:
        return await self._run(self._select_history, owner_id, start, end)

    def _insert_history(self, record: CompletionHistory) -> None:
        with self._lock:
            data = self._read(record.owner_id)
            data.setdefault("completion_history", []).append(record.to_dict())
            self._write(record.owner_id, data)

    async def insert_history(self, record: CompletionHistory) -> None:
        await self._run(self._insert_history, record)
