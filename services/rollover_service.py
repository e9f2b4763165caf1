# services/rollover_service.py

import logging
from datetime import date
from typing import Callable, Optional

from core.exceptions import HabitTrackerError, PartialRolloverError, RolloverError
from database.manager import LocalSettings, LAST_OPENED_DATE_KEY, ROLLOVER_PROGRESS_KEY
from models.enums import RolloverStage
from models.rollover import RolloverProgress, RolloverResult
from services.habit_service import HabitSet
from services.history_service import HistoryRecorder
from utils.concurrency import SingleFlight
from utils.datetime_utils import Clock, days_between

logger = logging.getLogger(__name__)


class RolloverEngine:
    """
    Closes out stale days on activation.

    When the calendar day moved past ``lastOpenedDate``:

    1. snapshot ``lastOpenedDate`` at the live completion percentage,
    2. write a 0% snapshot for every day strictly between it and today,
    3. reset all habits to incomplete,
    4. only then move ``lastOpenedDate`` to today.

    Progress is persisted after each step, so a check that failed halfway
    resumes on the next activation, backfilling any days that passed in
    between. Days that already have a history row are
    never written again. A clock that moved backward leaves
    ``lastOpenedDate`` untouched.

    One check per owner runs at a time (concurrent callers share its result)
    and it holds the owner's HabitSet lock throughout.
    """

    def __init__(self, settings: LocalSettings, clock: Clock, recorder: HistoryRecorder,
                 habit_sets: Callable[[str], HabitSet]):
        self.settings = settings
        self.clock = clock
        self.recorder = recorder
        self.habit_sets = habit_sets
        self._single_flight = SingleFlight()

    async def run_rollover_check(self, owner_id: str) -> RolloverResult:
        return await self._single_flight.run(owner_id, lambda: self._check(owner_id))

    async def _check(self, owner_id: str) -> RolloverResult:
        habit_set = self.habit_sets(owner_id)
        async with habit_set.lock:
            today = self.clock.today()
            last_opened = self.settings.get_date(LAST_OPENED_DATE_KEY)
            result = RolloverResult(today=today, last_opened=last_opened)

            logger.info(f"📅 Rollover check for {owner_id}: today {today}, last opened {last_opened}")

            if last_opened is None:
                logger.info("📅 First run, nothing to roll over")
                self.settings.set_date(LAST_OPENED_DATE_KEY, today)
                return result

            if today < last_opened:
                logger.warning(f"⚠️ Clock is behind last opened date ({today} < {last_opened}), keeping {last_opened}")
                return result

            if today == last_opened:
                self.settings.set_date(LAST_OPENED_DATE_KEY, today)
                return result

            await self._roll_over(owner_id, habit_set, last_opened, today, result)
            result.rolled_over = True
            logger.info(f"✅ Rollover committed for {owner_id}: {last_opened} -> {today}")
            return result

    def _load_progress(self, owner_id: str, last_opened: date) -> Optional[RolloverProgress]:
        raw = self.settings.get(ROLLOVER_PROGRESS_KEY)
        if not raw:
            return None
        try:
            progress = RolloverProgress.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Discarding unreadable rollover progress: {e}")
            return None
        if progress.owner_id != owner_id or progress.from_date != last_opened:
            logger.info("Discarding rollover progress of another owner or day")
            return None
        return progress

    def _save_progress(self, progress: RolloverProgress, stage: Optional[RolloverStage] = None) -> None:
        if stage is not None:
            progress.stage = stage
        self.settings.set(ROLLOVER_PROGRESS_KEY, progress.to_dict())

    async def _roll_over(self, owner_id: str, habit_set: HabitSet, last_opened: date,
                         today: date, result: RolloverResult) -> None:
        progress = self._load_progress(owner_id, last_opened)
        if progress is None:
            progress = RolloverProgress(owner_id=owner_id, from_date=last_opened, to_date=today)
        else:
            result.resumed = True
            logger.info(f"🔁 Resuming rollover from stage {progress.stage.value}")
            if progress.to_date != today and progress.stage.reached(RolloverStage.BACKFILLED_MISSING_DAYS):
                # more days went by since the interrupted attempt
                logger.info(f"📅 Target day moved from {progress.to_date} to {today}, backfilling again")
                progress.stage = RolloverStage.SNAPSHOTTED_CURRENT_DAY
            progress.to_date = today

        backfilling = False
        try:
            existing = await self.recorder.recorded_dates(owner_id, last_opened, today)

            if not progress.stage.reached(RolloverStage.SNAPSHOTTED_CURRENT_DAY):
                if last_opened in existing:
                    logger.info(f"Snapshot for {last_opened} already recorded, skipping")
                else:
                    await habit_set.refresh_locked()
                    percentage = habit_set.completion_percentage
                    await self.recorder.record_snapshot(owner_id, last_opened, percentage)
                    result.snapshot_percentage = percentage
                self._save_progress(progress, RolloverStage.SNAPSHOTTED_CURRENT_DAY)

            if not progress.stage.reached(RolloverStage.BACKFILLED_MISSING_DAYS):
                backfilling = True
                for day in days_between(progress.backfilled_through or last_opened, today):
                    if day in existing:
                        continue
                    logger.info(f"📝 Backfilling 0% for missed day {day}")
                    await self.recorder.record_snapshot(owner_id, day, 0.0)
                    result.backfilled_days.append(day)
                    progress.backfilled_through = day
                    self._save_progress(progress)
                backfilling = False
                self._save_progress(progress, RolloverStage.BACKFILLED_MISSING_DAYS)

            if not progress.stage.reached(RolloverStage.HABITS_RESET):
                await habit_set.reset_all_locked()
                self._save_progress(progress, RolloverStage.HABITS_RESET)

            # from here on only the date pointer and the cleanup remain
            self._save_progress(progress, RolloverStage.COMMITTED)
            self.settings.set_date(LAST_OPENED_DATE_KEY, today)
            self.settings.delete(ROLLOVER_PROGRESS_KEY)

        except HabitTrackerError as e:
            stage = progress.stage.value
            logger.error(f"❌ Rollover for {owner_id} stopped after stage {stage}: {e}")
            if backfilling and result.backfilled_days:
                raise PartialRolloverError(
                    f"Backfill interrupted after {len(result.backfilled_days)} day(s): {e}",
                    stage, result.backfilled_days, cause=e,
                ) from e
            raise RolloverError(f"Rollover failed: {e}", stage, cause=e) from e
