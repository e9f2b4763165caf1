from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime, timezone

TITLE_MAX_LENGTH = 500


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Wire rows, named exactly like the backend columns
class HabitRow(BaseModel):
    id: str
    user_id: str
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    is_completed: bool = False
    created_at: datetime

    @field_validator('id', 'user_id', mode='before')
    @classmethod
    def coerce_identifier(cls, v):
        return str(v) if v is not None else v

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Habit title must not be empty')
        return v.strip()

    @field_validator('created_at')
    @classmethod
    def validate_created_at(cls, v):
        return _aware(v)


class HabitPatch(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    is_completed: Optional[bool] = None

    @field_validator('title', mode='before')
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class CompletionHistoryRow(BaseModel):
    id: str
    user_id: str
    date: date
    completion_percentage: float = Field(..., ge=0.0, le=1.0)
    created_at: datetime

    @field_validator('id', 'user_id', mode='before')
    @classmethod
    def coerce_identifier(cls, v):
        return str(v) if v is not None else v

    @field_validator('date', mode='before')
    @classmethod
    def strip_time(cls, v):
        # some backends send "2025-02-03T00:00:00" for a date column
        if isinstance(v, str) and 'T' in v:
            return v.split('T', 1)[0]
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator('created_at')
    @classmethod
    def validate_created_at(cls, v):
        return _aware(v)


class SessionPayload(BaseModel):
    """Subset of the auth server token response we rely on"""
    access_token: str
    refresh_token: str
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    user: dict = {}

    @property
    def user_id(self) -> Optional[str]:
        value = self.user.get('id')
        return str(value) if value else None
