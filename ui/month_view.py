# ui/month_view.py

import calendar
from datetime import date
from typing import Dict, List, Optional

from ui.progress import level_mark

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def month_grid(month: date) -> List[List[Optional[date]]]:
    """Weeks of the month starting on Sunday; None pads cells outside the month"""
    cal = calendar.Calendar(firstweekday=calendar.SUNDAY)
    return [
        [day if day.month == month.month else None for day in week]
        for week in cal.monthdatescalendar(month.year, month.month)
    ]


def render_month(month: date, completion: Dict[date, float], today: Optional[date] = None) -> str:
    """
    Plain-text month calendar.

    Each cell shows the day number and a mark for its completion level; days
    without a history row count as 0%. Today is wrapped in brackets.
    """
    lines = [month.strftime("%B %Y").center(7 * 6), " ".join(f"{d:>5}" for d in WEEKDAYS)]
    for week in month_grid(month):
        cells = []
        for day in week:
            if day is None:
                cells.append(" " * 5)
                continue
            mark = level_mark(completion.get(day, 0.0))
            label = f"{day.day:>2}{mark}"
            if day == today:
                label = f"[{label}]"
            cells.append(f"{label:>5}")
        lines.append(" ".join(cells))
    return "\n".join(lines)
