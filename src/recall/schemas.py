from __future__ import annotations

import json
from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Reminder, ensure_aware

# Shared type for incoming due dates which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]

# Keys dropped from a persisted line when they hold their "unset" value.
_OMIT_WHEN_EMPTY = ("links", "tags", "priority")


def _parse_due(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Internal helper to normalize due input into an aware datetime.
    - If value is a string, attempt datetime.fromisoformat; a bare date means 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - Naive datetimes are taken as local time.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return ensure_aware(value)

    if isinstance(value, date):
        return ensure_aware(datetime(value.year, value.month, value.day))

    if isinstance(value, str):
        s = value.strip()
        try:
            return ensure_aware(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError(
                    "Invalid due format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e
            return ensure_aware(datetime(d.year, d.month, d.day))

    raise ValueError("Invalid type for due; expected date, datetime, or ISO8601 string.")


def _clean_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if not (1 <= len(s) <= 500):
        raise ValueError("title length must be between 1 and 500 characters")
    return s


# PUBLIC_INTERFACE
class ReminderRecord(BaseModel):
    """
    One line of the local JSONL log.

    The key names are the on-disk format and must stay stable. Optional fields
    are left out of a line when absent; ``completed`` is always written.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    due: Optional[datetime] = None
    notes: Optional[str] = None
    links: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    priority: int = Field(default=0, ge=0, le=3)
    completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_reminder(cls, reminder: Reminder) -> "ReminderRecord":
        return cls(
            id=reminder.id,
            title=reminder.title,
            due=reminder.due,
            notes=reminder.notes,
            links=list(reminder.links),
            tags=list(reminder.tags),
            priority=int(reminder.priority),
            completed=reminder.completed,
            completed_at=reminder.completed_at,
            created_at=reminder.created_at,
            updated_at=reminder.updated_at,
        )

    def to_reminder(self) -> Reminder:
        """Rebuild the entity; raises ValueError when the record breaks an invariant."""
        return Reminder(
            id=self.id,
            title=self.title,
            due=self.due,
            notes=self.notes,
            links=list(self.links),
            tags=list(self.tags),
            priority=self.priority,
            completed=self.completed,
            completed_at=self.completed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_json_line(self) -> str:
        """Serialize as a single JSON object followed by a newline."""
        data = self.model_dump(mode="json", exclude_none=True)
        for key in _OMIT_WHEN_EMPTY:
            if not data.get(key):
                data.pop(key, None)
        return json.dumps(data, ensure_ascii=False) + "\n"


# PUBLIC_INTERFACE
class ReminderCreate(BaseModel):
    """
    Schema for creating a new reminder.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Pay rent",
                "notes": "Transfer before noon",
                "due": "2025-02-01",
                "priority": 3,
                "tags": ["home"],
                "links": ["https://bank.example.com"],
            }
        }
    )

    title: str = Field(..., description="Short title for the reminder", min_length=1, max_length=500)
    notes: Optional[str] = Field(default=None, description="Optional free-form notes")
    due: Optional[datetime] = Field(
        default=None,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )
    priority: int = Field(default=0, ge=0, le=3, description="0=none, 1=low, 2=medium, 3=high")
    links: List[str] = Field(default_factory=list, description="Links attached to the reminder")
    tags: List[str] = Field(default_factory=list, description="Tags attached to the reminder")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and reject blank titles.
        """
        if v is None:
            raise ValueError("title is required")
        return _clean_title(v)  # type: ignore[return-value]

    @field_validator("due", mode="before")
    @classmethod
    def parse_due(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        """
        Normalize due from str/date/datetime to an aware datetime.
        """
        return _parse_due(v)

    def build(self) -> Reminder:
        """Create a new Reminder (fresh id and timestamps) from this payload."""
        reminder = Reminder(self.title)
        if self.notes is not None:
            reminder.set_notes(self.notes)
        for link in self.links:
            reminder.add_link(link)
        for tag in self.tags:
            reminder.add_tag(tag)
        if self.priority:
            reminder.set_priority(self.priority)
        if self.due is not None:
            reminder.set_due(self.due)
        return reminder


# PUBLIC_INTERFACE
class ReminderUpdate(BaseModel):
    """
    Schema for updating an existing reminder.
    All fields are optional. title, notes, due and priority replace the stored
    values; links and tags are appended (they are append-only).
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Pay rent and utilities",
                "due": "2025-02-02T09:30:00",
                "tags": ["bills"],
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the reminder", min_length=1, max_length=500)
    notes: Optional[str] = Field(default=None, description="Optional free-form notes")
    due: Optional[datetime] = Field(default=None, description="Due date/time; send null to clear it")
    priority: Optional[int] = Field(default=None, ge=0, le=3, description="0=none, 1=low, 2=medium, 3=high")
    links: List[str] = Field(default_factory=list, description="Links to append")
    tags: List[str] = Field(default_factory=list, description="Tags to append")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and reject blank titles.
        """
        return _clean_title(v)

    @field_validator("due", mode="before")
    @classmethod
    def parse_due(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due(v)

    def apply(self, reminder: Reminder) -> None:
        """Apply the provided fields through the entity's mutators."""
        if self.title is not None:
            reminder.set_title(self.title)
        if "notes" in self.model_fields_set:
            reminder.set_notes(self.notes)
        if "due" in self.model_fields_set:
            # Respect explicit nulling of due
            reminder.set_due(self.due)
        if self.priority is not None:
            reminder.set_priority(self.priority)
        for link in self.links:
            reminder.add_link(link)
        for tag in self.tags:
            reminder.add_tag(tag)


# PUBLIC_INTERFACE
class ReminderOut(BaseModel):
    """
    Schema returned by the API for a reminder.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "1768773271812-7727a989",
                "title": "Pay rent",
                "notes": None,
                "due": "2025-02-01T09:00:00+01:00",
                "links": [],
                "tags": ["home"],
                "priority": 3,
                "completed": False,
                "completed_at": None,
                "created_at": "2025-01-25T10:15:30.123456+01:00",
                "updated_at": "2025-01-26T09:00:00.000001+01:00",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the reminder")
    title: str = Field(..., description="Short title for the reminder")
    notes: Optional[str] = Field(default=None, description="Optional free-form notes")
    due: Optional[datetime] = Field(default=None, description="Due date/time as an ISO8601 datetime")
    links: List[str] = Field(default_factory=list, description="Attached links")
    tags: List[str] = Field(default_factory=list, description="Attached tags")
    priority: int = Field(..., description="0=none, 1=low, 2=medium, 3=high")
    completed: bool = Field(..., description="Completion status flag")
    completed_at: Optional[datetime] = Field(default=None, description="Completion timestamp")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_reminder(cls, reminder: Reminder) -> "ReminderOut":
        return cls(
            id=reminder.id,
            title=reminder.title,
            notes=reminder.notes,
            due=reminder.due,
            links=list(reminder.links),
            tags=list(reminder.tags),
            priority=int(reminder.priority),
            completed=reminder.completed,
            completed_at=reminder.completed_at,
            created_at=reminder.created_at,  # type: ignore[arg-type]
            updated_at=reminder.updated_at,  # type: ignore[arg-type]
        )
