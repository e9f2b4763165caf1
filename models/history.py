# models/history.py

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from shared.models import CompletionHistoryRow


@dataclass
class CompletionHistory:
    """Completion snapshot of one calendar day"""
    id: str
    owner_id: str
    date: date
    completion_percentage: float
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def new(cls, owner_id: str, day: date, percentage: float) -> "CompletionHistory":
        return cls(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            date=day,
            completion_percentage=percentage,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "date": self.date.isoformat(),
            "completion_percentage": self.completion_percentage,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CompletionHistory":
        row = CompletionHistoryRow.model_validate(data)
        return cls(
            id=row.id,
            owner_id=row.user_id,
            date=row.date,
            completion_percentage=row.completion_percentage,
            created_at=row.created_at,
        )
