from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_DATA_DIR = "~/.recall"
DEFAULT_DATA_FILE = "reminders.jsonl"
DEFAULT_APPLE_LIST = "Recall"

_BACKENDS = {"local", "jsonl", "memory", "apple", "reminders", "todoist"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - RECALL_BACKEND: 'local' (default), 'memory', 'apple' or 'todoist'
    - RECALL_DATA_DIR: directory for the local log. Default '~/.recall'
    - RECALL_DATA_FILE: local log file name. Default 'reminders.jsonl'
    - RECALL_APPLE_LIST: Apple Reminders list to use. Default 'Recall'
    - TODOIST_API_TOKEN: token for the todoist backend
    - TODOIST_PROJECT_ID: optional project to scope todoist listing to
    - RECALL_LOG_LEVEL: logging level name (default: WARNING)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    """

    backend: str
    data_dir: Path
    data_file: str
    apple_list: str
    todoist_token: Optional[str]
    todoist_project_id: Optional[str]
    log_level: int
    cors_allow_origins: List[str]

    @property
    def data_path(self) -> Path:
        return self.data_dir / self.data_file


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _parse_level(value: str) -> int:
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def load_env_file(path: Optional[Path] = None) -> None:
    """Load ~/.recall/.env (or ``path``) without overriding variables already set."""
    env_path = path or Path(DEFAULT_DATA_DIR).expanduser() / ".env"
    if env_path.is_file():
        load_dotenv(env_path, override=False)


# PUBLIC_INTERFACE
def get_settings(backend: Optional[str] = None) -> Settings:
    """
    Return application settings loaded from environment variables.

    ``backend`` overrides RECALL_BACKEND (used by the CLI --backend flag).
    Raises ValueError for an unknown backend name.
    """
    load_env_file()

    name = (backend or _get_env("RECALL_BACKEND", "local")).strip().lower()
    if name not in _BACKENDS:
        raise ValueError(f"unknown backend: {name} (use: local, memory, apple, todoist)")

    return Settings(
        backend=name,
        data_dir=Path(_get_env("RECALL_DATA_DIR", DEFAULT_DATA_DIR)).expanduser(),
        data_file=_get_env("RECALL_DATA_FILE", DEFAULT_DATA_FILE),
        apple_list=_get_env("RECALL_APPLE_LIST", DEFAULT_APPLE_LIST),
        todoist_token=os.getenv("TODOIST_API_TOKEN") or None,
        todoist_project_id=os.getenv("TODOIST_PROJECT_ID") or None,
        log_level=_parse_level(_get_env("RECALL_LOG_LEVEL", "WARNING")),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
    )
