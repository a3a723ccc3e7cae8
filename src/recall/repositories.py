from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from .models import Reminder, ensure_aware

if TYPE_CHECKING:
    from .settings import Settings


class RepositoryError(Exception):
    """Base class for every failure raised through the Repository contract."""


class NotFoundError(RepositoryError):
    """No live reminder has the requested id."""

    def __init__(self, reminder_id: str) -> None:
        super().__init__(f"reminder not found: {reminder_id}")
        self.reminder_id = reminder_id


class StorageError(RepositoryError):
    """Local file I/O failed; the original OSError is chained as __cause__."""


class BackendError(RepositoryError):
    """An external service (script runner, remote API) failed."""


@dataclass(frozen=True)
class ListFilter:
    """
    Predicates for listing reminders. All clauses are ANDed; an unset clause
    places no constraint.

    - include_completed: completed reminders are left out unless True
    - tags: match when the reminder carries any of these tags (case-insensitive)
    - due_after: inclusive lower bound on due
    - due_before: exclusive upper bound on due
    - search: case-insensitive substring of title or notes

    A reminder without a due date never matches a filter with a due bound.
    """

    include_completed: bool = False
    tags: Tuple[str, ...] = ()
    due_before: Optional[datetime] = None
    due_after: Optional[datetime] = None
    search: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", tuple(self.tags))
        if self.due_before is not None:
            object.__setattr__(self, "due_before", ensure_aware(self.due_before))
        if self.due_after is not None:
            object.__setattr__(self, "due_after", ensure_aware(self.due_after))

    def matches(self, reminder: Reminder) -> bool:
        if reminder.completed and not self.include_completed:
            return False

        if self.tags and not any(reminder.has_tag(t) for t in self.tags):
            return False

        if self.due_before is not None or self.due_after is not None:
            if reminder.due is None:
                return False
            if self.due_after is not None and reminder.due < self.due_after:
                return False
            if self.due_before is not None and reminder.due >= self.due_before:
                return False

        if self.search:
            s = self.search.casefold()
            title_ok = s in reminder.title.casefold()
            notes_ok = s in reminder.notes.casefold() if reminder.notes else False
            if not (title_ok or notes_ok):
                return False

        return True


def apply_filter(reminders: List[Reminder], filter: Optional[ListFilter]) -> List[Reminder]:
    """Shared filtering step; ``None`` means every reminder, completed included."""
    if filter is None:
        return list(reminders)
    return [r for r in reminders if filter.matches(r)]


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract store contract implemented by every reminder backend."""

    #: Short backend name reported by the health endpoint and the CLI.
    name: str = "abstract"

    @abstractmethod
    def add(self, reminder: Reminder) -> None:
        """Persist a new reminder. The caller's object is not modified."""

    @abstractmethod
    def get(self, reminder_id: str) -> Reminder:
        """Return the live reminder with this id or raise NotFoundError."""

    @abstractmethod
    def list(self, filter: Optional[ListFilter] = None) -> List[Reminder]:
        """Return every live reminder matching the filter (all of them for None)."""

    @abstractmethod
    def update(self, reminder: Reminder) -> None:
        """Replace the stored version addressed by reminder.id; NotFoundError if absent."""

    @abstractmethod
    def delete(self, reminder_id: str) -> None:
        """Remove a live reminder; NotFoundError if absent."""

    @abstractmethod
    def complete(self, reminder_id: str) -> None:
        """Mark a live reminder completed; NotFoundError if absent."""

    def close(self) -> None:
        """Release backend resources. Most backends hold none."""
        return None


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and ephemeral runs.
    """

    name = "memory"

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, Reminder] = {}

    def add(self, reminder: Reminder) -> None:
        with self._lock:
            self._items[reminder.id] = reminder.copy()

    def get(self, reminder_id: str) -> Reminder:
        with self._lock:
            item = self._items.get(reminder_id)
            if item is None:
                raise NotFoundError(reminder_id)
            return item.copy()

    def list(self, filter: Optional[ListFilter] = None) -> List[Reminder]:
        with self._lock:
            # Return copies to avoid external mutation
            return [r.copy() for r in apply_filter(list(self._items.values()), filter)]

    def update(self, reminder: Reminder) -> None:
        with self._lock:
            if reminder.id not in self._items:
                raise NotFoundError(reminder.id)
            self._items[reminder.id] = reminder.copy()

    def delete(self, reminder_id: str) -> None:
        with self._lock:
            if self._items.pop(reminder_id, None) is None:
                raise NotFoundError(reminder_id)

    def complete(self, reminder_id: str) -> None:
        with self._lock:
            item = self._items.get(reminder_id)
            if item is None:
                raise NotFoundError(reminder_id)
            item.complete()


# PUBLIC_INTERFACE
def get_repository(settings: "Settings") -> Repository:
    """
    Build the repository selected by settings.backend.
    - local / jsonl: JSONLRepository at settings.data_path
    - memory: InMemoryRepository
    - apple / reminders: AppleRemindersRepository on settings.apple_list
    - todoist: TodoistRepository (requires settings.todoist_token)

    The caller owns the returned instance and should close() it when done.
    """
    backend = settings.backend
    if backend in {"local", "jsonl"}:
        from .jsonl import JSONLRepository

        return JSONLRepository(settings.data_path)
    if backend == "memory":
        return InMemoryRepository()
    if backend in {"apple", "reminders"}:
        from .apple import AppleRemindersRepository

        return AppleRemindersRepository(settings.apple_list)
    if backend == "todoist":
        if not settings.todoist_token:
            raise ValueError("TODOIST_API_TOKEN environment variable not set")
        from .todoist import TodoistRepository

        return TodoistRepository(settings.todoist_token, project_id=settings.todoist_project_id)
    raise ValueError(f"unknown backend: {backend} (use: local, memory, apple, todoist)")
