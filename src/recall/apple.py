"""
Apple Reminders backend.

Drives the Reminders app through ``osascript``. AppleScript does not expose
stable reminder ids, so this backend identifies reminders by title: the id of
every reminder it returns equals its title, and get/delete/complete look
reminders up by title.
"""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime
from typing import List, Optional

from .models import Priority, Reminder, now
from .repositories import BackendError, ListFilter, NotFoundError, Repository, apply_filter

logger = logging.getLogger(__name__)

OSASCRIPT = "osascript"
FIELD_SEP = "|||"

# Apple: 0=none, 1=high, 5=medium, 9=low
_TO_APPLE_PRIORITY = {Priority.LOW: 9, Priority.MEDIUM: 5, Priority.HIGH: 1}
_FROM_APPLE_PRIORITY = {"1": Priority.HIGH, "5": Priority.MEDIUM, "9": Priority.LOW}

_DUE_IN_FORMAT = "%A, %B %d, %Y at %I:%M:%S %p"

_LIST_SCRIPT = """
tell application "Reminders"
	set output to ""
	try
		set reminderList to list "{list_name}"
		repeat with r in reminders of reminderList
			set rName to name of r
			set rBody to body of r
			if rBody is missing value then set rBody to ""
			set rCompleted to completed of r
			set rDueDate to ""
			try
				set rDueDate to due date of r as string
			end try
			set rPriority to priority of r
			set output to output & rName & "{sep}" & rBody & "{sep}" & rCompleted & "{sep}" & rDueDate & "{sep}" & rPriority & "
"
		end repeat
	end try
	return output
end tell"""

_ADD_SCRIPT = """
tell application "Reminders"
	try
		set reminderList to list "{list_name}"
	on error
		make new list with properties {{name:"{list_name}"}}
		set reminderList to list "{list_name}"
	end try
	tell reminderList
		make new reminder with properties {{{props}}}
	end tell
end tell"""

_BY_TITLE_SCRIPT = """
tell application "Reminders"
	try
		set reminderList to list "{list_name}"
		repeat with r in reminders of reminderList
			if name of r is "{title}" then
				{action}
				return "{done}"
			end if
		end repeat
	end try
	return "not found"
end tell"""


def escape_applescript(value: str) -> str:
    """Escape a string for embedding in a double-quoted AppleScript literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def format_due(due: datetime) -> str:
    """Format as AppleScript expects, e.g. "January 2, 2006 3:04:05 PM"."""
    hour = due.hour % 12 or 12
    return f"{due:%B} {due.day}, {due.year} {hour}:{due:%M:%S %p}"


def parse_due(value: str) -> Optional[datetime]:
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.strptime(value, _DUE_IN_FORMAT)
    except ValueError:
        logger.debug("Unrecognised Apple due date %r", value)
        return None


class AppleRemindersRepository(Repository):
    """
    Repository backed by one list in Apple Reminders.

    Priorities are mapped onto Apple's scale at the boundary. Listing applies
    the same ListFilter policy as the local store.
    """

    name = "apple"

    def __init__(self, list_name: str = "Recall", osascript: str = OSASCRIPT) -> None:
        self.list_name = list_name or "Recall"
        self._osascript = osascript

    def _run_script(self, script: str) -> str:
        """Run an AppleScript and return its stdout."""
        try:
            result = subprocess.run(
                [self._osascript, "-e", script],
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            raise BackendError(f"osascript error: {exc}") from exc
        if result.returncode != 0:
            logger.warning("osascript failed rc=%s: %s", result.returncode, result.stderr.strip())
            raise BackendError(f"osascript error: exit status {result.returncode}: {result.stderr.strip()}")
        return result.stdout

    def _by_title(self, title: str, action: str, done: str) -> None:
        script = _BY_TITLE_SCRIPT.format(
            list_name=escape_applescript(self.list_name),
            title=escape_applescript(title),
            action=action,
            done=done,
        )
        if self._run_script(script).strip() == "not found":
            raise NotFoundError(title)

    def build_add_script(self, reminder: Reminder) -> str:
        props = [f'name:"{escape_applescript(reminder.title)}"']
        if reminder.notes:
            props.append(f'body:"{escape_applescript(reminder.notes)}"')
        if reminder.due is not None:
            props.append(f'due date:date "{format_due(reminder.due)}"')
        if reminder.priority in _TO_APPLE_PRIORITY:
            props.append(f"priority:{_TO_APPLE_PRIORITY[reminder.priority]}")
        if reminder.completed:
            props.append("completed:true")
        return _ADD_SCRIPT.format(
            list_name=escape_applescript(self.list_name),
            props=", ".join(props),
        )

    def parse_reminders(self, output: str) -> List[Reminder]:
        """Translate the list script's output into reminders, skipping short rows."""
        reminders: List[Reminder] = []
        seen = now()
        for line in output.strip().splitlines():
            parts = line.split(FIELD_SEP)
            if len(parts) < 5 or not parts[0].strip():
                continue
            completed = parts[2].strip() == "true"
            reminders.append(
                Reminder(
                    id=parts[0],
                    title=parts[0],
                    notes=parts[1] or None,
                    completed=completed,
                    # Creation and completion dates are not read back from Apple.
                    completed_at=seen if completed else None,
                    due=parse_due(parts[3]),
                    priority=_FROM_APPLE_PRIORITY.get(parts[4].strip(), Priority.NONE),
                    created_at=seen,
                    updated_at=seen,
                )
            )
        return reminders

    # ---- public API ----

    def add(self, reminder: Reminder) -> None:
        self._run_script(self.build_add_script(reminder))
        logger.debug("Apple reminder added title=%s", reminder.title)

    def get(self, reminder_id: str) -> Reminder:
        for r in self.list(ListFilter(include_completed=True, search=reminder_id)):
            if r.id == reminder_id or r.title == reminder_id:
                return r
        raise NotFoundError(reminder_id)

    def list(self, filter: Optional[ListFilter] = None) -> List[Reminder]:
        script = _LIST_SCRIPT.format(list_name=escape_applescript(self.list_name), sep=FIELD_SEP)
        return apply_filter(self.parse_reminders(self._run_script(script)), filter)

    def update(self, reminder: Reminder) -> None:
        """
        Replace by title: delete the old reminder, then add the new version
        (completion state included). The two scripts are not atomic; if the
        add fails after the delete, the reminder is gone and BackendError is
        raised.
        """
        self.delete(reminder.id)
        self.add(reminder)

    def delete(self, reminder_id: str) -> None:
        self._by_title(reminder_id, action="delete r", done="deleted")

    def complete(self, reminder_id: str) -> None:
        self._by_title(reminder_id, action="set completed of r to true", done="completed")
