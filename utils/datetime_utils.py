from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Tuple

import pytz


class Clock:
    """Current time and calendar day in one fixed time zone"""

    def __init__(self, tz_name: str = "UTC"):
        self.tz = pytz.timezone(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)

    def today(self) -> date:
        """Current calendar day, time of day truncated"""
        return self.now().date()


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def days_between(start: date, end: date) -> Iterator[date]:
    """Days strictly between ``start`` and ``end``"""
    current = start + timedelta(days=1)
    while current < end:
        yield current
        current += timedelta(days=1)


def month_bounds(day: date) -> Tuple[date, date]:
    """First day of the month containing ``day`` and first day of the next one"""
    first = day.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return first, next_first


def shift_month(day: date, months: int) -> date:
    """First day of the month ``months`` away from the one containing ``day``"""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)
