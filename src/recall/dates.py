from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Tuple

from .models import ensure_aware

DUE_HOUR = 9

_WEEKDAYS = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}

# Formats with a year, then formats without one (filled with the current year).
_DATED_FORMATS = ("%Y-%m-%d", "%m/%d/%Y")
_UNDATED_FORMATS = ("%b %d", "%B %d")


def _local_wall_clock(moment: Optional[datetime]) -> datetime:
    """Naive local time for ``moment`` (now when None)."""
    if moment is None:
        return datetime.now()
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


def _at_due_hour(day: datetime) -> datetime:
    return day.replace(hour=DUE_HOUR, minute=0, second=0, microsecond=0)


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def next_weekday(start: datetime, weekday: int) -> datetime:
    """
    The next ``weekday`` strictly after ``start`` (a week ahead when it is today).

    Pass a naive wall-clock time; adding days to a fixed UTC offset would keep
    that offset across a DST change.
    """
    days = (weekday - start.weekday()) % 7 or 7
    return start + timedelta(days=days)


# PUBLIC_INTERFACE
def parse_due(text: str, now: Optional[datetime] = None) -> datetime:
    """
    Turn a due phrase into an aware local datetime at 09:00.

    Accepts: today, tomorrow, weekday names or their three letter forms,
    2024-01-15, 01/15/2024, "Jan 15" and "January 15". Raises ValueError for
    anything else. ``now`` is read as local time; naive values are taken as is.
    """
    current = _local_wall_clock(now)
    today = _at_due_hour(current)
    phrase = text.strip().lower()

    if phrase == "today":
        return ensure_aware(today)
    if phrase == "tomorrow":
        return ensure_aware(today + timedelta(days=1))
    if phrase in _WEEKDAYS:
        return ensure_aware(next_weekday(today, _WEEKDAYS[phrase]))

    raw = text.strip()
    for fmt in _DATED_FORMATS:
        try:
            parsed = datetime.strptime(raw, fmt)
        except ValueError:
            continue
        return ensure_aware(today.replace(year=parsed.year, month=parsed.month, day=parsed.day))
    for fmt in _UNDATED_FORMATS:
        try:
            # Parse with an explicit year so Feb 29 is accepted in leap years.
            parsed = datetime.strptime(f"{current.year} {raw}", f"%Y {fmt}")
        except ValueError:
            continue
        return ensure_aware(today.replace(month=parsed.month, day=parsed.day))

    raise ValueError(f"could not parse date: {text}")


# PUBLIC_INTERFACE
def day_window(kind: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Return aware local ``(after, before)`` bounds for listing: 'today',
    'tomorrow' or 'week' (today plus the next six days).
    """
    start = _start_of_day(_local_wall_clock(now))
    if kind == "today":
        after, before = start, start + timedelta(days=1)
    elif kind == "tomorrow":
        after, before = start + timedelta(days=1), start + timedelta(days=2)
    elif kind == "week":
        after, before = start, start + timedelta(days=7)
    else:
        raise ValueError(f"unknown window: {kind}")
    return ensure_aware(after), ensure_aware(before)
