from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO


class _ThirdPartyFilter(logging.Filter):
    """
    Keep recall's own records at the configured level; let other libraries
    (httpx, uvicorn access logs) through only at WARNING and above.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "recall" or record.name.startswith("recall."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: int = logging.WARNING, stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger with a single stderr handler.

    Call this once, early, from an entry point. Earlier handlers are removed
    so repeated calls do not duplicate output.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.addFilter(_ThirdPartyFilter())
    root.addHandler(handler)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
