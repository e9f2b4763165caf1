# services/scheduler.py

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

DAILY_ROLLOVER_JOB = "daily_rollover"


def create_scheduler(timezone: str) -> AsyncIOScheduler:
    return AsyncIOScheduler(timezone=timezone)


def schedule_daily_rollover(scheduler: AsyncIOScheduler, callback, hour: int = 0, minute: int = 1):
    """Run ``callback`` (a coroutine function) every day at hour:minute of the scheduler's zone"""
    trigger = CronTrigger(hour=hour, minute=minute, timezone=scheduler.timezone)
    job = scheduler.add_job(
        callback,
        trigger,
        id=DAILY_ROLLOVER_JOB,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=3600,
    )
    logger.info(f"⏰ Daily rollover scheduled at {hour:02d}:{minute:02d} ({scheduler.timezone})")
    return job
