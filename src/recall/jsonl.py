from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from threading import RLock
from typing import Callable, Dict, Iterable, List, Optional, Union

from .models import Reminder
from .repositories import ListFilter, NotFoundError, Repository, StorageError, apply_filter
from .schemas import ReminderRecord

logger = logging.getLogger(__name__)


def _discard(path: str) -> None:
    with contextlib.suppress(FileNotFoundError):
        os.unlink(path)


class JSONLRepository(Repository):
    """
    Append-only JSON Lines repository.

    Each line holds one complete reminder. Adding appends a line; update,
    delete and complete rewrite the file with only the live set (compaction)
    through a temp file and os.replace, so readers see either the old or the
    new file. On read, later lines win over earlier lines with the same id and
    lines that fail to parse are skipped.

    One lock per instance serializes every operation. Nothing guards against a
    second process writing the same path.
    """

    name = "local"

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._lock = RLock()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"creating directory {self._path.parent}: {exc}") from exc
        logger.info("JSONLRepository ready path=%s", self._path)

    @property
    def path(self) -> Path:
        return self._path

    # ---- low-level helpers ----

    def _read_live(self) -> Dict[str, Reminder]:
        """Fold the log into its live set, keyed by id in first-seen order."""
        live: Dict[str, Reminder] = {}
        try:
            f = open(self._path, "r", encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return live
        except OSError as exc:
            raise StorageError(f"opening {self._path}: {exc}") from exc

        skipped = 0
        try:
            with f:
                for lineno, raw in enumerate(f, start=1):
                    line = raw.strip()
                    if not line:
                        continue
                    try:
                        reminder = ReminderRecord.model_validate_json(line).to_reminder()
                    except ValueError:
                        skipped += 1
                        logger.debug("Skipping malformed line %s in %s", lineno, self._path)
                        continue
                    # Latest version wins
                    live[reminder.id] = reminder
        except OSError as exc:
            raise StorageError(f"reading {self._path}: {exc}") from exc

        if skipped:
            logger.debug("Read %s live reminders, skipped %s malformed lines", len(live), skipped)
        return live

    def _append(self, reminder: Reminder) -> None:
        # Serialize before touching the file so encoding errors commit no bytes.
        data = ReminderRecord.from_reminder(reminder).to_json_line().encode("utf-8")
        try:
            with open(self._path, "ab+") as f:
                # A crash mid-append can leave an unterminated fragment; start a fresh line.
                if f.seek(0, os.SEEK_END) > 0:
                    f.seek(-1, os.SEEK_END)
                    if f.read(1) != b"\n":
                        data = b"\n" + data
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            raise StorageError(f"appending to {self._path}: {exc}") from exc

    def _write_all(self, reminders: Iterable[Reminder]) -> None:
        """Replace the log with exactly these reminders, one line each."""
        lines = [ReminderRecord.from_reminder(r).to_json_line() for r in reminders]
        try:
            temp_fd, temp_path = tempfile.mkstemp(
                dir=self._path.parent, prefix=self._path.name + ".", suffix=".tmp"
            )
        except OSError as exc:
            raise StorageError(f"creating temp file next to {self._path}: {exc}") from exc

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                f.writelines(lines)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self._path)  # Atomic on POSIX and Windows
        except OSError as exc:
            _discard(temp_path)
            raise StorageError(f"rewriting {self._path}: {exc}") from exc
        except BaseException:
            _discard(temp_path)
            raise
        logger.debug("Rewrote %s with %s reminders", self._path, len(lines))

    def _rewrite(self, reminder_id: str, change: Callable[[Dict[str, Reminder]], None]) -> None:
        live = self._read_live()
        if reminder_id not in live:
            raise NotFoundError(reminder_id)
        change(live)
        self._write_all(live.values())

    # ---- public API ----

    def add(self, reminder: Reminder) -> None:
        with self._lock:
            self._append(reminder)
        logger.debug("Reminder added id=%s", reminder.id)

    def get(self, reminder_id: str) -> Reminder:
        with self._lock:
            live = self._read_live()
        try:
            return live[reminder_id]
        except KeyError:
            raise NotFoundError(reminder_id) from None

    def list(self, filter: Optional[ListFilter] = None) -> List[Reminder]:
        with self._lock:
            live = self._read_live()
        return apply_filter(list(live.values()), filter)

    def update(self, reminder: Reminder) -> None:
        def replace(live: Dict[str, Reminder]) -> None:
            live[reminder.id] = reminder.copy()

        with self._lock:
            self._rewrite(reminder.id, replace)
        logger.debug("Reminder updated id=%s", reminder.id)

    def delete(self, reminder_id: str) -> None:
        def remove(live: Dict[str, Reminder]) -> None:
            del live[reminder_id]

        with self._lock:
            self._rewrite(reminder_id, remove)
        logger.debug("Reminder deleted id=%s", reminder_id)

    def complete(self, reminder_id: str) -> None:
        def mark(live: Dict[str, Reminder]) -> None:
            live[reminder_id].complete()

        with self._lock:
            self._rewrite(reminder_id, mark)
        logger.debug("Reminder completed id=%s", reminder_id)

    def compact(self) -> int:
        """Rewrite the log to its live set, dropping history. Returns the live count."""
        with self._lock:
            live = self._read_live()
            self._write_all(live.values())
        logger.info("Compacted %s to %s reminders", self._path, len(live))
        return len(live)
