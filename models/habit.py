# models/habit.py

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from shared.models import HabitRow


@dataclass
class Habit:
    """A daily habit owned by one user"""
    id: str
    owner_id: str
    title: str
    is_completed: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def new(cls, owner_id: str, title: str) -> "Habit":
        return cls(id=str(uuid.uuid4()), owner_id=owner_id, title=title.strip())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "title": self.title,
            "is_completed": self.is_completed,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Habit":
        row = HabitRow.model_validate(data)
        return cls(
            id=row.id,
            owner_id=row.user_id,
            title=row.title,
            is_completed=row.is_completed,
            created_at=row.created_at,
        )
