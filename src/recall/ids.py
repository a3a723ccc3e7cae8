from __future__ import annotations

import secrets
import threading
import time

_lock = threading.Lock()
_last_millis = 0


# PUBLIC_INTERFACE
def generate_id() -> str:
    """
    Create a reminder identifier of the form ``{unix_millis}-{8 hex chars}``.

    The millisecond prefix never goes backwards within a process, so ids minted
    here sort roughly by creation time. The suffix comes from ``secrets``.
    """
    global _last_millis
    with _lock:
        millis = max(time.time_ns() // 1_000_000, _last_millis)
        _last_millis = millis
    return f"{millis}-{secrets.token_hex(4)}"
