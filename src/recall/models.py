from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import IntEnum
from typing import List, Optional

from .ids import generate_id


class Priority(IntEnum):
    """Canonical priority scale shared by every backend."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


_PRIORITY_VALUES = frozenset(int(p) for p in Priority)

_PRIORITY_WORDS = {
    "low": Priority.LOW,
    "1": Priority.LOW,
    "medium": Priority.MEDIUM,
    "med": Priority.MEDIUM,
    "2": Priority.MEDIUM,
    "high": Priority.HIGH,
    "3": Priority.HIGH,
}


# PUBLIC_INTERFACE
def parse_priority(value: str) -> Priority:
    """Map a user supplied word or digit to a Priority; unknown input is NONE."""
    return _PRIORITY_WORDS.get(value.strip().lower(), Priority.NONE)


# PUBLIC_INTERFACE
def now() -> datetime:
    """Current local time as an aware datetime."""
    return datetime.now().astimezone()


# PUBLIC_INTERFACE
def ensure_aware(value: datetime) -> datetime:
    """Interpret naive datetimes as local time."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def _validate_title(title: str) -> str:
    if title is None or not title.strip():
        raise ValueError("title is required")
    return title


# PUBLIC_INTERFACE
@dataclass
class Reminder:
    """
    A reminder with its schedule, context and completion state.

    Fields:
    - id: "{millis}-{hex}" for locally created reminders; never reassigned
    - title: required, non-empty
    - due: optional deadline
    - notes: optional free text (None means absent, "" is kept as present-empty)
    - links, tags: append-only lists; tags compare case-insensitively
    - priority: 0=none, 1=low, 2=medium, 3=high
    - completed / completed_at: completed_at is set iff completed is true
    - created_at / updated_at: updated_at is refreshed by every mutator below

    Constructing ``Reminder("Pay rent")`` assigns a new id and timestamps.
    Backends rebuilding a stored reminder pass every field explicitly.
    """

    title: str
    id: str = field(default_factory=generate_id)
    due: Optional[datetime] = None
    notes: Optional[str] = None
    links: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    priority: int = Priority.NONE
    completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        _validate_title(self.title)
        if not self.id:
            raise ValueError("id must not be empty")
        if self.priority not in _PRIORITY_VALUES:
            raise ValueError(f"priority must be between 0 and 3, got {self.priority!r}")
        self.priority = Priority(self.priority)

        created = ensure_aware(self.created_at) if self.created_at else now()
        self.created_at = created
        self.updated_at = ensure_aware(self.updated_at) if self.updated_at else created
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not precede created_at")

        if self.due is not None:
            self.due = ensure_aware(self.due)
        if self.completed_at is not None:
            self.completed_at = ensure_aware(self.completed_at)
        if self.completed != (self.completed_at is not None):
            raise ValueError("completed_at must be set exactly when completed is true")

    def _touch(self) -> None:
        # Guard against a wall clock stepping back behind created_at.
        self.updated_at = max(now(), self.created_at)

    def complete(self) -> None:
        """Mark the reminder completed; completing twice keeps the first completed_at."""
        if self.completed:
            return
        self._touch()
        self.completed = True
        self.completed_at = self.updated_at

    def add_link(self, link: str) -> None:
        self.links.append(link)
        self._touch()

    def add_tag(self, tag: str) -> None:
        self.tags.append(tag)
        self._touch()

    def set_due(self, due: Optional[datetime]) -> None:
        self.due = ensure_aware(due) if due is not None else None
        self._touch()

    def set_notes(self, notes: Optional[str]) -> None:
        self.notes = notes
        self._touch()

    def set_priority(self, priority: int) -> None:
        if priority not in _PRIORITY_VALUES:
            raise ValueError(f"priority must be between 0 and 3, got {priority!r}")
        self.priority = Priority(priority)
        self._touch()

    def set_title(self, title: str) -> None:
        self.title = _validate_title(title)
        self._touch()

    def has_tag(self, tag: str) -> bool:
        wanted = tag.casefold()
        return any(t.casefold() == wanted for t in self.tags)

    def copy(self) -> "Reminder":
        """Return an independent copy; the link and tag lists are not shared."""
        return replace(self, links=list(self.links), tags=list(self.tags))
