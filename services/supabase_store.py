# services/supabase_store.py

import logging
from datetime import date
from typing import List, Optional, Tuple

import aiohttp
from pydantic import ValidationError

from core.exceptions import AuthError, StoreError
from core.remote_store import RemoteStore
from models.habit import Habit
from models.history import CompletionHistory
from services.session_service import SessionManager
from utils.decorators import store_call

logger = logging.getLogger(__name__)

HABITS_TABLE = "habits"
HISTORY_TABLE = "completion_history"


def history_filters(owner_id: str, start: Optional[date] = None,
                    end: Optional[date] = None) -> List[Tuple[str, str]]:
    """PostgREST query parameters for an owner's history in ``[start, end)``"""
    params = [("select", "*"), ("user_id", f"eq.{owner_id}")]
    if start is not None:
        params.append(("date", f"gte.{start.isoformat()}"))
    if end is not None:
        params.append(("date", f"lt.{end.isoformat()}"))
    return params


class SupabaseRestStore(RemoteStore):
    """
    RemoteStore over the Supabase PostgREST API (``/rest/v1/<table>``).

    Every request carries the project API key and the bearer token of the
    current session lease; the lease is refreshed first when it is close to
    expiry. Row level security on the server scopes rows to the owner, the
    ``user_id`` filter is sent anyway.
    """

    def __init__(self, base_url: str, api_key: str, session: SessionManager,
                 timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._http: Optional[aiohttp.ClientSession] = None

    def _client(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(timeout=self.timeout)
        return self._http

    async def _headers(self, prefer: Optional[str] = None) -> dict:
        lease = await self.session.ensure_session()
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {lease.access_token}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(self, method: str, table: str, params=None, json=None,
                       prefer: Optional[str] = None):
        url = f"{self.base_url}/rest/v1/{table}"
        headers = await self._headers(prefer)
        async with self._client().request(method, url, params=params, json=json, headers=headers) as resp:
            if resp.status == 401:
                raise AuthError(f"{method} {table}: session rejected")
            resp.raise_for_status()
            if method == "GET":
                return await resp.json()
            return None

    # ===== habits =====

    @store_call("select habits")
    async def select_habits(self, owner_id: str) -> List[Habit]:
        rows = await self._request("GET", HABITS_TABLE, params=[
            ("select", "*"), ("user_id", f"eq.{owner_id}"), ("order", "created_at.asc"),
        ])
        try:
            return [Habit.from_dict(row) for row in rows]
        except ValidationError as e:
            raise StoreError(f"Unexpected habit row: {e}") from e

    @store_call("insert habit")
    async def insert_habit(self, habit: Habit) -> None:
        await self._request("POST", HABITS_TABLE, json=habit.to_dict(), prefer="return=minimal")
        logger.debug(f"💾 Habit {habit.id} inserted")

    @store_call("update habit")
    async def update_habit(self, habit_id: str, patch: dict) -> None:
        await self._request("PATCH", HABITS_TABLE, params=[("id", f"eq.{habit_id}")],
                            json=patch, prefer="return=minimal")

    @store_call("delete habit")
    async def delete_habit(self, habit_id: str) -> None:
        await self._request("DELETE", HABITS_TABLE, params=[("id", f"eq.{habit_id}")],
                            prefer="return=minimal")

    # ===== completion_history =====

    @store_call("select completion history")
    async def select_history(self, owner_id: str, start: Optional[date] = None,
                             end: Optional[date] = None) -> List[CompletionHistory]:
        rows = await self._request("GET", HISTORY_TABLE, params=history_filters(owner_id, start, end))
        try:
            return [CompletionHistory.from_dict(row) for row in rows]
        except ValidationError as e:
            raise StoreError(f"Unexpected completion history row: {e}") from e

    @store_call("insert completion history")
    async def insert_history(self, record: CompletionHistory) -> None:
        await self._request("POST", HISTORY_TABLE, json=record.to_dict(), prefer="return=minimal")

    async def close(self) -> None:
        if self._http is not None and not self._http.closed:
            await self._http.close()
