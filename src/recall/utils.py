from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Tuple

from .models import Reminder

_PRIORITY_MARKS = ("", "!", "!!", "!!!")


def _sort_key(reminder: Reminder) -> Tuple[int, float, float]:
    due = reminder.due.timestamp() if reminder.due is not None else 0.0
    created = reminder.created_at.timestamp() if reminder.created_at is not None else 0.0
    return (reminder.due is None, due, created)


# PUBLIC_INTERFACE
def sort_reminders(reminders: Iterable[Reminder]) -> List[Reminder]:
    """
    Order reminders by due date (undated last), then by creation time.
    """
    return sorted(reminders, key=_sort_key)


def format_due(due: datetime) -> str:
    return f"{due:%a %b} {due.day}"


# PUBLIC_INTERFACE
def format_reminder(reminder: Reminder, show_id: bool = False) -> List[str]:
    """
    Render a reminder as printable lines, e.g.::

        [ ] Pay rent (due: Mon Jan 15) !!!
            Tags: home
    """
    status = "[x]" if reminder.completed else "[ ]"
    due = f" (due: {format_due(reminder.due)})" if reminder.due is not None else ""
    mark = _PRIORITY_MARKS[reminder.priority]
    priority = f" {mark}" if mark else ""

    lines = [f"{status} {reminder.title}{due}{priority}"]
    if show_id:
        lines.append(f"    ID: {reminder.id}")
    if reminder.notes:
        lines.append(f"    Note: {reminder.notes}")
    if reminder.tags:
        lines.append(f"    Tags: {', '.join(reminder.tags)}")
    for link in reminder.links:
        lines.append(f"    Link: {link}")
    return lines
