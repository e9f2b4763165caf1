# services/__init__.py

"""
Services of the habit tracker client.

Every collaborator is built once by ServiceManager and handed to the
services that need it; there are no module level instances.
"""

import logging
from typing import Dict, Optional

from config import AppConfig
from core.remote_store import RemoteStore
from database.json_store import JsonFileStore
from database.manager import LocalSettings
from models.enums import StoreBackend
from models.rollover import RolloverResult
from utils.datetime_utils import Clock

from .habit_service import HabitSet
from .history_service import HistoryRecorder
from .rollover_service import RolloverEngine
from .session_service import SessionManager, SupabaseSessionManager, OfflineSessionManager
from .supabase_store import SupabaseRestStore

logger = logging.getLogger(__name__)


class ServiceManager:
    """
    Builds and owns the services of one client process

    Order of construction: settings and clock, session, store, history
    recorder, rollover engine. Habit sets are created per owner on demand.
    """

    def __init__(self, config: AppConfig, clock: Optional[Clock] = None,
                 settings: Optional[LocalSettings] = None,
                 session: Optional[SessionManager] = None,
                 store: Optional[RemoteStore] = None):
        self.config = config
        self.clock = clock or Clock(config.rollover.timezone)
        self.settings = settings or LocalSettings(config.local.settings_file)
        self.session = session or self._build_session()
        self.store = store or self._build_store()
        self.recorder = HistoryRecorder(self.store)
        self.rollover = RolloverEngine(self.settings, self.clock, self.recorder, self.habit_set)
        self._habit_sets: Dict[str, HabitSet] = {}
        logger.info(f"✅ Services ready (store: {config.store.backend.value})")

    def _build_session(self) -> SessionManager:
        store_config = self.config.store
        leeway = self.config.session.refresh_leeway_seconds
        if store_config.backend == StoreBackend.SUPABASE:
            return SupabaseSessionManager(
                self.settings,
                store_config.supabase_url,
                store_config.supabase_key,
                timeout=store_config.request_timeout,
                leeway_seconds=leeway,
            )
        return OfflineSessionManager(self.settings, leeway_seconds=leeway)

    def _build_store(self) -> RemoteStore:
        store_config = self.config.store
        if store_config.backend == StoreBackend.SUPABASE:
            return SupabaseRestStore(
                store_config.supabase_url,
                store_config.supabase_key,
                self.session,
                timeout=store_config.request_timeout,
            )
        return JsonFileStore(self.config.local.store_dir)

    def habit_set(self, owner_id: str) -> HabitSet:
        habit_set = self._habit_sets.get(owner_id)
        if habit_set is None:
            habit_set = self._habit_sets[owner_id] = HabitSet(owner_id, self.store)
        return habit_set

    async def activate(self) -> RolloverResult:
        """
        What the client does whenever it is opened: require a session, run
        the rollover check and load today's habits.
        """
        owner_id = self.session.require_user_id()
        await self.session.ensure_session()
        result = await self.rollover.run_rollover_check(owner_id)
        if not result.rolled_over:
            # a rollover already refetched the set
            await self.habit_set(owner_id).refresh()
        return result

    async def close(self):
        """Close network clients"""
        try:
            await self.store.close()
        finally:
            await self.session.close()
        logger.info("🛑 Services closed")


__all__ = [
    'ServiceManager',
    'HabitSet',
    'HistoryRecorder',
    'RolloverEngine',
    'SessionManager',
    'SupabaseSessionManager',
    'OfflineSessionManager',
    'SupabaseRestStore'
]
