from datetime import datetime, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from recall.main import create_app
from recall.repositories import BackendError, InMemoryRepository, StorageError
from recall.todoist import TodoistRepository


@pytest.fixture()
def repo():
    return InMemoryRepository()


@pytest.fixture()
def client(settings, repo):
    with TestClient(create_app(settings, repository=repo)) as c:
        yield c


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def create_reminder_payload(title="Test reminder", notes="Do something", due=None, **extra):
    payload = {"title": title, "notes": notes}
    if due is not None:
        payload["due"] = due
    payload.update(extra)
    return payload


def assert_reminder_shape(reminder: dict):
    for key in [
        "id", "title", "notes", "due", "links", "tags",
        "priority", "completed", "completed_at", "created_at", "updated_at",
    ]:
        assert key in reminder
    assert isinstance(reminder["id"], str)
    assert isinstance(reminder["completed"], bool)
    assert isinstance(reminder["links"], list)
    _ts(reminder["created_at"])
    _ts(reminder["updated_at"])
    if reminder["due"] is not None:
        _ts(reminder["due"])


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        assert res.json() == {"message": "Healthy", "backend": "memory"}


class TestRemindersCRUD:
    def test_create_minimal(self, client):
        res = client.post("/api/v1/reminders/", json={"title": "  Buy milk  "})
        assert res.status_code == 201
        reminder = res.json()
        assert_reminder_shape(reminder)
        assert reminder["title"] == "Buy milk"
        assert reminder["notes"] is None
        assert reminder["priority"] == 0
        assert reminder["completed"] is False

    def test_create_full(self, client, repo):
        payload = create_reminder_payload(
            title="Pay rent",
            notes="Before noon",
            due="2099-12-25",
            priority=3,
            tags=["home"],
            links=["https://bank.example.com"],
        )
        res = client.post("/api/v1/reminders/", json=payload)
        assert res.status_code == 201
        reminder = res.json()
        assert_reminder_shape(reminder)
        assert reminder["due"].startswith("2099-12-25T00:00:00")
        assert reminder["tags"] == ["home"]
        assert reminder["links"] == ["https://bank.example.com"]
        assert repo.get(reminder["id"]).priority == 3

    def test_get_and_not_found(self, client):
        created = client.post("/api/v1/reminders/", json=create_reminder_payload()).json()
        res = client.get(f"/api/v1/reminders/{created['id']}")
        assert res.status_code == 200
        assert res.json()["id"] == created["id"]

        res = client.get("/api/v1/reminders/0-deadbeef")
        assert res.status_code == 404
        assert res.json() == {"detail": "Reminder not found"}

    def test_patch(self, client):
        created = client.post(
            "/api/v1/reminders/", json=create_reminder_payload(due="2099-01-01", tags=["a"])
        ).json()
        res = client.patch(
            f"/api/v1/reminders/{created['id']}",
            json={"title": "Renamed", "notes": None, "tags": ["b"], "priority": 2},
        )
        assert res.status_code == 200
        updated = res.json()
        assert updated["title"] == "Renamed"
        assert updated["notes"] is None
        assert updated["tags"] == ["a", "b"]
        assert updated["priority"] == 2
        # due was not sent, so it is unchanged
        assert updated["due"] == created["due"]
        assert _ts(updated["updated_at"]) >= _ts(created["updated_at"])

    def test_patch_clears_due(self, client):
        created = client.post("/api/v1/reminders/", json=create_reminder_payload(due="2099-01-01")).json()
        res = client.patch(f"/api/v1/reminders/{created['id']}", json={"due": None})
        assert res.status_code == 200
        assert res.json()["due"] is None

    def test_patch_not_found(self, client):
        res = client.patch("/api/v1/reminders/0-deadbeef", json={"title": "x"})
        assert res.status_code == 404

    def test_complete(self, client):
        created = client.post("/api/v1/reminders/", json=create_reminder_payload()).json()
        res = client.post(f"/api/v1/reminders/{created['id']}/complete")
        assert res.status_code == 200
        done = res.json()
        assert done["completed"] is True
        assert done["completed_at"] is not None

        assert client.post("/api/v1/reminders/0-deadbeef/complete").status_code == 404

    def test_delete(self, client):
        created = client.post("/api/v1/reminders/", json=create_reminder_payload()).json()
        res = client.delete(f"/api/v1/reminders/{created['id']}")
        assert res.status_code == 204
        assert client.get(f"/api/v1/reminders/{created['id']}").status_code == 404
        assert client.delete(f"/api/v1/reminders/{created['id']}").status_code == 404


class TestListFilters:
    def _seed(self, client):
        now = datetime.now().astimezone()
        ids = {}
        for title, days, tags in [
            ("Soon", 1, ["work"]),
            ("Later", 10, ["home"]),
            ("Someday", None, ["Work"]),
        ]:
            due = (now + timedelta(days=days)).isoformat() if days is not None else None
            payload = create_reminder_payload(title=title, due=due, tags=tags)
            ids[title] = client.post("/api/v1/reminders/", json=payload).json()["id"]
        done = client.post("/api/v1/reminders/", json=create_reminder_payload(title="Done")).json()
        client.post(f"/api/v1/reminders/{done['id']}/complete")
        ids["Done"] = done["id"]
        return now, ids

    def test_default_hides_completed_and_sorts_by_due(self, client):
        self._seed(client)
        res = client.get("/api/v1/reminders/")
        assert res.status_code == 200
        assert [r["title"] for r in res.json()] == ["Soon", "Later", "Someday"]

    def test_include_completed(self, client):
        self._seed(client)
        res = client.get("/api/v1/reminders/", params={"include_completed": "true"})
        assert "Done" in [r["title"] for r in res.json()]

    def test_tag_filter(self, client):
        self._seed(client)
        res = client.get("/api/v1/reminders/", params={"tag": "work"})
        assert [r["title"] for r in res.json()] == ["Soon", "Someday"]

        res = client.get("/api/v1/reminders/", params=[("tag", "work"), ("tag", "home")])
        assert len(res.json()) == 3

    def test_due_bounds(self, client):
        now, _ = self._seed(client)
        params = {
            "due_after": now.isoformat(),
            "due_before": (now + timedelta(days=5)).isoformat(),
        }
        res = client.get("/api/v1/reminders/", params=params)
        assert [r["title"] for r in res.json()] == ["Soon"]

    def test_search(self, client):
        self._seed(client)
        res = client.get("/api/v1/reminders/", params={"q": "LATER"})
        assert [r["title"] for r in res.json()] == ["Later"]


class TestErrors:
    def test_validation_error_shape(self, client):
        res = client.post("/api/v1/reminders/", json={"title": "   "})
        assert res.status_code == 422
        data = res.json()
        assert data["error"] == "ValidationError"
        assert data["message"] == "Request validation failed"
        assert isinstance(data["detail"], list)

    @pytest.mark.parametrize("payload", [
        {"title": "x", "priority": 4},
        {"title": "x", "due": "next week"},
        {"title": "x" * 501},
        {},
    ])
    def test_invalid_create(self, client, payload):
        assert client.post("/api/v1/reminders/", json=payload).status_code == 422

    def test_backend_error_is_502(self, client, repo, monkeypatch):
        def broken(filter=None):
            raise BackendError("osascript error: exit status 1")

        monkeypatch.setattr(repo, "list", broken)
        res = client.get("/api/v1/reminders/")
        assert res.status_code == 502
        assert res.json() == {"error": "BackendError", "message": "osascript error: exit status 1"}

    def test_storage_error_is_500(self, client, repo, monkeypatch):
        def broken(reminder_id):
            raise StorageError("reading reminders.jsonl: permission denied")

        monkeypatch.setattr(repo, "get", broken)
        res = client.get("/api/v1/reminders/abc")
        assert res.status_code == 500
        assert res.json()["error"] == "StorageError"


def test_app_over_jsonl_store(settings):
    # No repository passed: the app builds the local store from settings
    with TestClient(create_app(settings)) as client:
        assert client.get("/").json()["backend"] == "local"
        created = client.post("/api/v1/reminders/", json={"title": "Persisted"}).json()
    assert settings.data_path.exists()
    assert created["id"] in settings.data_path.read_text(encoding="utf-8")


def test_complete_on_backend_hiding_completed_tasks(settings):
    # Todoist only serves active tasks, so a read after closing would 404
    closed = set()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path.endswith("/close"):
            closed.add("7025")
            return httpx.Response(204)
        if request.method == "GET" and request.url.path == "/rest/v2/tasks/7025":
            if "7025" in closed:
                return httpx.Response(404, text="Task not found")
            return httpx.Response(200, json={"id": "7025", "content": "Pay rent", "labels": ["home"]})
        return httpx.Response(500)

    repo = TodoistRepository("secret", transport=httpx.MockTransport(handler))
    with TestClient(create_app(settings, repository=repo)) as client:
        res = client.post("/api/v1/reminders/7025/complete")
    assert res.status_code == 200
    done = res.json()
    assert done["id"] == "7025"
    assert done["completed"] is True
    assert done["completed_at"] is not None
    assert closed == {"7025"}
