"""Time-based identifiers."""

import threading
import time

_lock = threading.Lock()
_last = 0


def new_id(prefix: str = "") -> str:
    """
    Return a new id derived from the current time in milliseconds.

    Ids are strictly increasing within a process, so two records created in
    the same millisecond still get distinct ids.
    """
    global _last
    with _lock:
        stamp = max(int(time.time() * 1000), _last + 1)
        _last = stamp
    return f"{prefix}{stamp}"
