# services/session_service.py

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import aiohttp
from pydantic import ValidationError

from core.exceptions import AuthError
from database.manager import LocalSettings, SESSION_KEY
from models.session import SessionLease
from shared.models import SessionPayload
from utils.decorators import store_call

logger = logging.getLogger(__name__)


def needs_refresh(lease: Optional[SessionLease], now: datetime, leeway_seconds: int = 60) -> bool:
    """True when there is no lease or it expires within ``leeway_seconds`` of ``now``"""
    if lease is None:
        return True
    return now + timedelta(seconds=leeway_seconds) >= lease.expires_at


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager(ABC):
    """
    Holds the session lease of this installation.

    The lease is persisted in LocalSettings so a restarted client keeps its
    login. Subclasses talk to the auth backend in ``_request_*``.
    """

    def __init__(self, settings: LocalSettings, leeway_seconds: int = 60,
                 now: Callable[[], datetime] = _utc_now):
        self.settings = settings
        self.leeway_seconds = leeway_seconds
        self._now = now
        self._lease: Optional[SessionLease] = self._load_lease()

    def _load_lease(self) -> Optional[SessionLease]:
        raw = self.settings.get(SESSION_KEY)
        if not raw:
            return None
        try:
            return SessionLease.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Stored session is unreadable, ignoring it: {e}")
            return None

    def _store_lease(self, lease: Optional[SessionLease]) -> None:
        self._lease = lease
        if lease is None:
            self.settings.delete(SESSION_KEY)
        else:
            self.settings.set(SESSION_KEY, lease.to_dict())

    @property
    def lease(self) -> Optional[SessionLease]:
        return self._lease

    def get_current_user_id(self) -> Optional[str]:
        """Owner id of the signed-in user, or None"""
        return self._lease.user_id if self._lease else None

    def require_user_id(self) -> str:
        user_id = self.get_current_user_id()
        if not user_id:
            raise AuthError("Not signed in")
        return user_id

    async def refresh_session(self) -> None:
        """Exchange the refresh token for a new lease; AuthError when impossible"""
        if self._lease is None:
            raise AuthError("No session to refresh")
        payload = await self._request_refresh(self._lease.refresh_token)
        lease = SessionLease.from_payload(payload, self._now())
        if not lease.user_id:
            lease.user_id = self._lease.user_id
        self._store_lease(lease)
        logger.info(f"✅ Session refreshed, valid until {lease.expires_at.isoformat()}")

    async def ensure_session(self) -> SessionLease:
        """Current lease, refreshed first when it is about to expire"""
        if needs_refresh(self._lease, self._now(), self.leeway_seconds):
            await self.refresh_session()
        return self._lease

    async def sign_in(self, email: str, password: str) -> str:
        payload = await self._request_sign_in(email, password)
        lease = SessionLease.from_payload(payload, self._now())
        self._store_lease(lease)
        logger.info(f"🔑 Signed in as {lease.user_id}")
        return lease.user_id

    async def sign_up(self, email: str, password: str) -> Optional[str]:
        """Register; returns the owner id when the backend opened a session right away"""
        payload = await self._request_sign_up(email, password)
        if payload is None:
            logger.info(f"📧 Account {email} created, confirmation pending")
            return None
        lease = SessionLease.from_payload(payload, self._now())
        self._store_lease(lease)
        logger.info(f"🆕 Signed up as {lease.user_id}")
        return lease.user_id

    async def sign_out(self) -> None:
        lease = self._lease
        self._store_lease(None)
        if lease is not None:
            await self._request_sign_out(lease)
        logger.info("👋 Signed out")

    @abstractmethod
    async def _request_sign_in(self, email: str, password: str) -> SessionPayload:
        """Token response for a password login"""

    @abstractmethod
    async def _request_sign_up(self, email: str, password: str) -> Optional[SessionPayload]:
        """Token response, or None when the account still needs confirmation"""

    @abstractmethod
    async def _request_refresh(self, refresh_token: str) -> SessionPayload:
        pass

    @abstractmethod
    async def _request_sign_out(self, lease: SessionLease) -> None:
        pass

    async def close(self) -> None:
        pass


class SupabaseSessionManager(SessionManager):
    """Session against the Supabase auth server (``/auth/v1``)"""

    def __init__(self, settings: LocalSettings, base_url: str, api_key: str,
                 timeout: float = 10.0, leeway_seconds: int = 60,
                 now: Callable[[], datetime] = _utc_now):
        super().__init__(settings, leeway_seconds, now)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._http: Optional[aiohttp.ClientSession] = None

    def _client(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"apikey": self.api_key, "Content-Type": "application/json"},
            )
        return self._http

    async def _post(self, path: str, body: dict, token: Optional[str] = None) -> Optional[dict]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        async with self._client().post(f"{self.base_url}/auth/v1/{path}", json=body, headers=headers) as resp:
            if resp.status in (400, 401, 403, 422):
                detail = await resp.text()
                raise AuthError(f"Auth server rejected {path.split('?')[0]}: {resp.status} {detail}")
            resp.raise_for_status()
            if resp.status == 204:
                return None
            return await resp.json()

    @staticmethod
    def _payload(data: Optional[dict]) -> SessionPayload:
        try:
            return SessionPayload.model_validate(data or {})
        except ValidationError as e:
            raise AuthError(f"Unexpected auth response: {e}") from e

    @store_call("sign in")
    async def _request_sign_in(self, email: str, password: str) -> SessionPayload:
        data = await self._post("token?grant_type=password", {"email": email, "password": password})
        return self._payload(data)

    @store_call("sign up")
    async def _request_sign_up(self, email: str, password: str) -> Optional[SessionPayload]:
        data = await self._post("signup", {"email": email, "password": password})
        # without auto-confirm the server answers with the bare user
        if not data or "access_token" not in data:
            return None
        return self._payload(data)

    @store_call("session refresh")
    async def _request_refresh(self, refresh_token: str) -> SessionPayload:
        data = await self._post("token?grant_type=refresh_token", {"refresh_token": refresh_token})
        return self._payload(data)

    @store_call("sign out")
    async def _request_sign_out(self, lease: SessionLease) -> None:
        try:
            await self._post("logout", {}, token=lease.access_token)
        except AuthError as e:
            # the token is already gone on the server side
            logger.debug(f"Logout rejected: {e}")

    async def close(self) -> None:
        if self._http is not None and not self._http.closed:
            await self._http.close()


class OfflineSessionManager(SessionManager):
    """
    Session for the local JSON backend.

    There is no auth server: the owner id is derived from the email and the
    lease is renewed locally.
    """

    LEASE_DAYS = 30

    def _local_payload(self, email: str) -> SessionPayload:
        user_id = str(uuid.uuid5(uuid.NAMESPACE_URL, f"mailto:{email.strip().lower()}"))
        return SessionPayload(
            access_token=f"offline-{uuid.uuid4()}",
            refresh_token=f"offline-{uuid.uuid4()}",
            expires_in=self.LEASE_DAYS * 86400,
            user={"id": user_id, "email": email},
        )

    async def _request_sign_in(self, email: str, password: str) -> SessionPayload:
        if not email.strip():
            raise AuthError("Email must not be empty")
        return self._local_payload(email)

    async def _request_sign_up(self, email: str, password: str) -> Optional[SessionPayload]:
        return await self._request_sign_in(email, password)

    async def _request_refresh(self, refresh_token: str) -> SessionPayload:
        return SessionPayload(
            access_token=f"offline-{uuid.uuid4()}",
            refresh_token=refresh_token,
            expires_in=self.LEASE_DAYS * 86400,
            user={},
        )

    async def _request_sign_out(self, lease: SessionLease) -> None:
        return None
