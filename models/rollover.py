# models/rollover.py

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from models.enums import RolloverStage


@dataclass
class RolloverProgress:
    """How far a rollover from ``from_date`` to ``to_date`` got; persisted between activations"""
    owner_id: str
    from_date: date
    stage: RolloverStage = RolloverStage.NOT_STARTED
    backfilled_through: Optional[date] = None
    to_date: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "owner_id": self.owner_id,
            "from_date": self.from_date.isoformat(),
            "to_date": self.to_date.isoformat() if self.to_date else None,
            "stage": self.stage.value,
            "backfilled_through": self.backfilled_through.isoformat() if self.backfilled_through else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RolloverProgress":
        backfilled = data.get("backfilled_through")
        to_date = data.get("to_date")
        return cls(
            owner_id=data["owner_id"],
            from_date=date.fromisoformat(data["from_date"]),
            stage=RolloverStage(data.get("stage", RolloverStage.NOT_STARTED.value)),
            backfilled_through=date.fromisoformat(backfilled) if backfilled else None,
            to_date=date.fromisoformat(to_date) if to_date else None,
        )


@dataclass
class RolloverResult:
    """Outcome of one rollover check"""
    today: date
    last_opened: Optional[date]
    rolled_over: bool = False
    snapshot_percentage: Optional[float] = None
    backfilled_days: List[date] = field(default_factory=list)
    resumed: bool = False
