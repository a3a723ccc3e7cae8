"""Todoist REST API v2 backend."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .models import Priority, Reminder, now
from .repositories import BackendError, ListFilter, NotFoundError, Repository, apply_filter

logger = logging.getLogger(__name__)

BASE_URL = "https://api.todoist.com/rest/v2"
LINKS_HEADER = "Links:"


def build_description(reminder: Reminder) -> str:
    """Notes followed by a "Links:" section, since Todoist has no link field."""
    parts: List[str] = []
    if reminder.notes:
        parts.append(reminder.notes)
    if reminder.links:
        parts.extend(["", LINKS_HEADER])
        parts.extend(f"- {link}" for link in reminder.links)
    return "\n".join(parts)


def split_description(description: str) -> Tuple[Optional[str], List[str]]:
    """Inverse of build_description: recover notes and links."""
    if not description:
        return None, []
    lines = description.split("\n")
    if LINKS_HEADER not in lines:
        return description, []
    idx = lines.index(LINKS_HEADER)
    links = [line[2:] for line in lines[idx + 1:] if line.startswith("- ")]
    notes = "\n".join(lines[:idx]).rstrip("\n")
    return notes or None, links


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unrecognised Todoist timestamp %r", value)
        return None


class TodoistRepository(Repository):
    """
    Repository backed by the Todoist REST API.

    Todoist assigns task ids itself, so the id of a reminder passed to add()
    is not preserved remotely. HTTP 404 becomes NotFoundError; any other
    failure becomes BackendError.
    """

    name = "todoist"

    def __init__(
        self,
        token: str,
        *,
        project_id: Optional[str] = None,
        base_url: str = BASE_URL,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._project_id = project_id
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
        )
        logger.info("TodoistRepository ready base_url=%s project=%s", base_url, project_id)

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        reminder_id: Optional[str] = None,
    ) -> Any:
        try:
            response = self._client.request(method, path, json=body, params=params)
        except httpx.HTTPError as exc:
            logger.warning("Todoist request failed %s %s: %s", method, path, exc)
            raise BackendError(f"executing request: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(reminder_id or path)
        if response.status_code >= 400:
            logger.warning("Todoist API error %s for %s %s", response.status_code, method, path)
            raise BackendError(f"API error {response.status_code}: {response.text}")
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(f"parsing response: {exc}") from exc

    def _task_payload(self, reminder: Reminder) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "content": reminder.title,
            "description": build_description(reminder),
            "labels": list(reminder.tags),
        }
        if reminder.due is not None:
            payload["due_string"] = reminder.due.strftime("%Y-%m-%d %H:%M")
        if reminder.priority > 0:
            # Todoist: 1=normal .. 4=urgent
            payload["priority"] = int(reminder.priority) + 1
        return payload

    def to_reminder(self, task: Dict[str, Any]) -> Reminder:
        """Reshape a Todoist task into a Reminder."""
        notes, links = split_description(task.get("description") or "")
        created = _parse_time(task.get("created_at")) or now()
        completed = bool(task.get("is_completed"))

        due = None
        due_obj = task.get("due") or {}
        if due_obj.get("datetime"):
            due = _parse_time(due_obj["datetime"])
        elif due_obj.get("date"):
            due = _parse_time(due_obj["date"])

        priority = int(task.get("priority") or 1)
        return Reminder(
            id=str(task["id"]),
            title=task.get("content") or "(untitled)",
            notes=notes,
            links=links,
            tags=list(task.get("labels") or []),
            due=due,
            priority=Priority(min(priority - 1, Priority.HIGH)) if priority > 1 else Priority.NONE,
            completed=completed,
            completed_at=created if completed else None,
            created_at=created,
            updated_at=created,
        )

    # ---- public API ----

    def add(self, reminder: Reminder) -> None:
        payload = self._task_payload(reminder)
        if self._project_id:
            payload["project_id"] = self._project_id
        created = self._request("POST", "/tasks", body=payload)
        logger.debug("Todoist task created id=%s", (created or {}).get("id"))

    def get(self, reminder_id: str) -> Reminder:
        return self.to_reminder(self._request("GET", f"/tasks/{reminder_id}", reminder_id=reminder_id))

    def list(self, filter: Optional[ListFilter] = None) -> List[Reminder]:
        params = {"project_id": self._project_id} if self._project_id else None
        tasks = self._request("GET", "/tasks", params=params) or []
        return apply_filter([self.to_reminder(t) for t in tasks], filter)

    def update(self, reminder: Reminder) -> None:
        self._request(
            "POST", f"/tasks/{reminder.id}", body=self._task_payload(reminder), reminder_id=reminder.id
        )

    def delete(self, reminder_id: str) -> None:
        self._request("DELETE", f"/tasks/{reminder_id}", reminder_id=reminder_id)

    def complete(self, reminder_id: str) -> None:
        self._request("POST", f"/tasks/{reminder_id}/close", reminder_id=reminder_id)
