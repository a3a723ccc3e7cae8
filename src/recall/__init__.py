"""
Recall: reminders with context.

Reminders are stored through the Repository contract in
``recall.repositories``; the default backend is the append-only JSON Lines
log in ``recall.jsonl``. The CLI (``rc``) and the FastAPI app in
``recall.main`` are thin layers over that contract.
"""

__version__ = "0.1.0"
