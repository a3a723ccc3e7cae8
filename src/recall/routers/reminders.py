from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ..repositories import ListFilter, Repository
from ..schemas import ReminderCreate, ReminderOut, ReminderUpdate
from ..utils import sort_reminders

router = APIRouter(
    prefix="/api/v1/reminders",
    tags=["reminders"],
)


def _get_repo(request: Request) -> Repository:
    """
    Dependency returning the repository owned by the running app.
    """
    return request.app.state.repository


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=ReminderOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Reminder",
    description="Create a new reminder and return the created resource.",
    responses={
        201: {"description": "Reminder created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_reminder(payload: ReminderCreate, repo: Repository = Depends(_get_repo)) -> ReminderOut:
    """
    Create a new reminder.
    """
    reminder = payload.build()
    repo.add(reminder)
    return ReminderOut.from_reminder(reminder)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[ReminderOut],
    summary="List Reminders",
    description=(
        "List reminders with optional filters.\n\n"
        "Query parameters:\n"
        "- include_completed: include completed reminders (default false)\n"
        "- tag: repeatable; matches reminders carrying any of the tags\n"
        "- due_after: inclusive lower bound on the due date\n"
        "- due_before: exclusive upper bound on the due date\n"
        "- q: search text for title/notes (substring match)\n\n"
        "Reminders without a due date are excluded when a due bound is given."
    ),
)
def list_reminders(
    include_completed: bool = Query(False, description="Include completed reminders"),
    tag: Optional[List[str]] = Query(None, description="Filter by tag (repeatable)"),
    due_before: Optional[datetime] = Query(None, description="Due strictly before this time"),
    due_after: Optional[datetime] = Query(None, description="Due at or after this time"),
    q: Optional[str] = Query(None, description="Search text for title/notes"),
    repo: Repository = Depends(_get_repo),
) -> List[ReminderOut]:
    """
    List reminders matching the filters, soonest due first.
    """
    query = ListFilter(
        include_completed=include_completed,
        tags=tuple(tag or ()),
        due_before=due_before,
        due_after=due_after,
        search=q.strip() if q else None,
    )
    items = sort_reminders(repo.list(query))
    return [ReminderOut.from_reminder(r) for r in items]


# PUBLIC_INTERFACE
@router.get(
    "/{reminder_id}",
    response_model=ReminderOut,
    summary="Get Reminder",
    description="Get a single reminder by ID.",
    responses={
        200: {"description": "Reminder found"},
        404: {"description": "Reminder not found"},
    },
)
def get_reminder(reminder_id: str, repo: Repository = Depends(_get_repo)) -> ReminderOut:
    """
    Retrieve a single reminder by its ID.
    """
    return ReminderOut.from_reminder(repo.get(reminder_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{reminder_id}",
    response_model=ReminderOut,
    summary="Update Reminder",
    description=(
        "Partially update a reminder. title, notes, due and priority replace the "
        "stored values; links and tags are appended."
    ),
    responses={
        200: {"description": "Reminder updated"},
        404: {"description": "Reminder not found"},
    },
)
def patch_reminder(
    reminder_id: str, payload: ReminderUpdate, repo: Repository = Depends(_get_repo)
) -> ReminderOut:
    """
    Fetch, mutate through the entity, and store the whole reminder back.
    """
    reminder = repo.get(reminder_id)
    payload.apply(reminder)
    repo.update(reminder)
    return ReminderOut.from_reminder(reminder)


# PUBLIC_INTERFACE
@router.post(
    "/{reminder_id}/complete",
    response_model=ReminderOut,
    summary="Complete Reminder",
    description="Mark a reminder as completed and return it.",
    responses={
        200: {"description": "Reminder completed"},
        404: {"description": "Reminder not found"},
    },
)
def complete_reminder(reminder_id: str, repo: Repository = Depends(_get_repo)) -> ReminderOut:
    """
    Complete a reminder and return it. The reminder is read before completing
    because some backends (Todoist) stop returning completed items.
    """
    reminder = repo.get(reminder_id)
    repo.complete(reminder_id)
    reminder.complete()
    return ReminderOut.from_reminder(reminder)


# PUBLIC_INTERFACE
@router.delete(
    "/{reminder_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Reminder",
    description="Delete a reminder by ID.",
    responses={
        204: {"description": "Reminder deleted"},
        404: {"description": "Reminder not found"},
    },
)
def delete_reminder(reminder_id: str, repo: Repository = Depends(_get_repo)) -> None:
    """
    Delete a reminder. Returns 204 on success, 404 if not found.
    """
    repo.delete(reminder_id)
    return None
