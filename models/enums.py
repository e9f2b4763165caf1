# models/enums.py

from enum import Enum


class RolloverStage(Enum):
    """Stages of a day rollover, in execution order"""
    NOT_STARTED = "not_started"
    SNAPSHOTTED_CURRENT_DAY = "snapshotted_current_day"
    BACKFILLED_MISSING_DAYS = "backfilled_missing_days"
    HABITS_RESET = "habits_reset"
    COMMITTED = "committed"

    @property
    def order(self) -> int:
        return _STAGE_ORDER.index(self)

    def reached(self, other: "RolloverStage") -> bool:
        """True when this stage is ``other`` or a later one."""
        return self.order >= other.order


_STAGE_ORDER = [
    RolloverStage.NOT_STARTED,
    RolloverStage.SNAPSHOTTED_CURRENT_DAY,
    RolloverStage.BACKFILLED_MISSING_DAYS,
    RolloverStage.HABITS_RESET,
    RolloverStage.COMMITTED,
]


class CompletionLevel(Enum):
    """Calendar cell intensity for a completion percentage"""
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def for_percentage(cls, percentage: float) -> "CompletionLevel":
        if percentage <= 0:
            return cls.NONE
        if percentage < 0.5:
            return cls.LOW
        if percentage < 0.8:
            return cls.MEDIUM
        return cls.HIGH


class StoreBackend(Enum):
    LOCAL = "local"
    SUPABASE = "supabase"
