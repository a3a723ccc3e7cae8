from __future__ import annotations

import logging
from pathlib import Path

import pytest

from recall.jsonl import JSONLRepository
from recall.settings import Settings


@pytest.fixture()
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "reminders.jsonl"


@pytest.fixture()
def store(log_path: Path) -> JSONLRepository:
    """A JSONL repository writing under a per-test directory."""
    return JSONLRepository(log_path)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings pointing at tmp_path, built directly so tests never read the
    developer's environment or ~/.recall/.env.
    """
    return Settings(
        backend="local",
        data_dir=tmp_path / "recall",
        data_file="reminders.jsonl",
        apple_list="Recall",
        todoist_token=None,
        todoist_project_id=None,
        log_level=logging.WARNING,
        cors_allow_origins=["*"],
    )


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Keep get_settings() away from the real home directory and env.
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for name in (
        "RECALL_BACKEND",
        "RECALL_DATA_DIR",
        "RECALL_DATA_FILE",
        "RECALL_APPLE_LIST",
        "RECALL_LOG_LEVEL",
        "TODOIST_API_TOKEN",
        "TODOIST_PROJECT_ID",
        "CORS_ALLOW_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
