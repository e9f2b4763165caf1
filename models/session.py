# models/session.py

from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from shared.models import SessionPayload


@dataclass
class SessionLease:
    """Auth session held by the client, valid until ``expires_at``"""
    access_token: str
    refresh_token: str
    user_id: str
    expires_at: datetime
    checked_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["expires_at"] = self.expires_at.isoformat()
        data["checked_at"] = self.checked_at.isoformat() if self.checked_at else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SessionLease":
        checked_at = data.get("checked_at")
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            user_id=data["user_id"],
            expires_at=datetime.fromisoformat(data["expires_at"]),
            checked_at=datetime.fromisoformat(checked_at) if checked_at else None,
        )

    @classmethod
    def from_payload(cls, payload: SessionPayload, now: datetime) -> "SessionLease":
        if payload.expires_at:
            expires_at = datetime.fromtimestamp(payload.expires_at, tz=timezone.utc)
        else:
            expires_at = now + timedelta(seconds=payload.expires_in or 3600)
        return cls(
            access_token=payload.access_token,
            refresh_token=payload.refresh_token,
            user_id=payload.user_id or "",
            expires_at=expires_at,
            checked_at=now,
        )
