"""
Recall command-line interface.

Examples:
  rc add "Call mom" --due tomorrow --note "Birthday next week"
  rc add "Review PR" --due monday --link "https://github.com/..." --tag work
  rc add "Pay rent" --due friday --priority high
  rc list --today
  rc list --tag work --ids
  rc complete 1768773271812-7727a989
  rc serve --port 8000
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .dates import day_window, parse_due
from .logging_setup import setup_logging
from .models import Reminder, parse_priority
from .repositories import ListFilter, Repository, RepositoryError, get_repository
from .settings import Settings, get_settings
from .utils import format_due, format_reminder, sort_reminders

logger = logging.getLogger(__name__)


def cmd_add(args: argparse.Namespace, repo: Repository) -> int:
    """Create a reminder from the title and flags."""
    try:
        reminder = Reminder(args.title)
        due = parse_due(args.due) if args.due else None
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.note:
        reminder.set_notes(args.note)
    for link in args.link:
        reminder.add_link(link)
    for tag in args.tag:
        reminder.add_tag(tag)
    if args.priority:
        reminder.set_priority(parse_priority(args.priority))
    if due is not None:
        reminder.set_due(due)

    repo.add(reminder)

    print(f"Created reminder: {reminder.title} (ID: {reminder.id})")
    if reminder.due is not None:
        print(f"  Due: {format_due(reminder.due)} {reminder.due:%Y %I:%M %p}")
    if reminder.notes:
        print(f"  Note: {reminder.notes}")
    if reminder.links:
        print(f"  Links: {', '.join(reminder.links)}")
    if reminder.tags:
        print(f"  Tags: {', '.join(reminder.tags)}")
    return 0


def build_filter(args: argparse.Namespace) -> ListFilter:
    """Translate list flags into a ListFilter."""
    due_after = due_before = None
    for window in ("today", "tomorrow", "week"):
        if getattr(args, window):
            due_after, due_before = day_window(window)
            break
    return ListFilter(
        include_completed=args.all or args.completed,
        tags=tuple(args.tag),
        due_after=due_after,
        due_before=due_before,
        search=args.search,
    )


def cmd_list(args: argparse.Namespace, repo: Repository) -> int:
    """Print reminders, soonest due first."""
    reminders = repo.list(build_filter(args))
    if args.completed:
        reminders = [r for r in reminders if r.completed]

    if not reminders:
        print("No reminders found.")
        return 0

    for reminder in sort_reminders(reminders):
        for line in format_reminder(reminder, show_id=args.ids):
            print(line)
    return 0


def cmd_show(args: argparse.Namespace, repo: Repository) -> int:
    for line in format_reminder(repo.get(args.id), show_id=True):
        print(line)
    return 0


def cmd_complete(args: argparse.Namespace, repo: Repository) -> int:
    repo.complete(args.id)
    print(f"Completed: {args.id}")
    return 0


def cmd_delete(args: argparse.Namespace, repo: Repository) -> int:
    repo.delete(args.id)
    print(f"Deleted: {args.id}")
    return 0


def cmd_serve(args: argparse.Namespace, repo: Repository, settings: Settings) -> int:
    """Serve the HTTP API over the selected backend."""
    import uvicorn

    from .main import create_app

    app = create_app(settings, repository=repo)
    uvicorn.run(app, host=args.host, port=args.port, log_level=logging.getLevelName(settings.log_level).lower())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rc",
        description="Recall - reminders with context.",
        epilog="Backends: local (default), memory, apple, todoist.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-b", "--backend",
        help="storage backend (local, memory, apple, todoist); defaults to RECALL_BACKEND or local",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output to stderr")

    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="add a new reminder")
    add.add_argument("title", help="reminder title")
    add.add_argument("-d", "--due", help="due date (e.g., tomorrow, monday, 2024-01-15)")
    add.add_argument("-n", "--note", help="note or instructions")
    add.add_argument("-l", "--link", action="append", default=[], help="link (repeatable)")
    add.add_argument("-t", "--tag", action="append", default=[], help="tag (repeatable)")
    add.add_argument("-p", "--priority", help="priority (low, medium, high)")

    lst = subparsers.add_parser("list", help="list reminders")
    window = lst.add_mutually_exclusive_group()
    window.add_argument("--today", action="store_true", help="only reminders due today")
    window.add_argument("--tomorrow", action="store_true", help="only reminders due tomorrow")
    window.add_argument("--week", action="store_true", help="reminders due in the next seven days")
    lst.add_argument("-t", "--tag", action="append", default=[], help="filter by tag (repeatable)")
    lst.add_argument("-a", "--all", action="store_true", help="include completed reminders")
    lst.add_argument("--completed", action="store_true", help="show only completed reminders")
    lst.add_argument("-s", "--search", help="text to find in title or notes")
    lst.add_argument("--ids", action="store_true", help="show reminder IDs (for complete/delete)")

    for name, help_text in (
        ("show", "show one reminder"),
        ("complete", "mark a reminder as completed"),
        ("delete", "delete a reminder"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("id", help="reminder ID (the title for the apple backend)")

    serve = subparsers.add_parser("serve", help="serve the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


_COMMANDS = {
    "add": cmd_add,
    "list": cmd_list,
    "show": cmd_show,
    "complete": cmd_complete,
    "delete": cmd_delete,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings(args.backend)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    setup_logging(logging.DEBUG if args.verbose else settings.log_level)

    try:
        repo = get_repository(settings)
    except (ValueError, RepositoryError) as exc:
        print(f"error: initializing store: {exc}", file=sys.stderr)
        return 1

    try:
        if args.command == "serve":
            return cmd_serve(args, repo, settings)
        return _COMMANDS[args.command](args, repo)
    except RepositoryError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        repo.close()


if __name__ == "__main__":
    sys.exit(main())
