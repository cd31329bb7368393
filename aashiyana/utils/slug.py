"""
Slug helpers for listing URLs.
"""

import re
import threading
import time

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_lock = threading.Lock()
_last_stamp = 0


def slugify(text: str) -> str:
    """
    Lower-case the text and collapse every run of other characters into '-'.
    Falls back to 'property' when nothing usable is left.
    """
    slug = _NON_ALNUM.sub("-", (text or "").strip().lower()).strip("-")
    return slug or "property"


def _next_stamp() -> int:
    # Millisecond clock that never repeats within the process
    global _last_stamp
    with _lock:
        stamp = int(time.time() * 1000)
        if stamp <= _last_stamp:
            stamp = _last_stamp + 1
        _last_stamp = stamp
        return stamp


def generate_slug(title: str) -> str:
    """Slug for a listing title, suffixed with a unique millisecond timestamp."""
    return f"{slugify(title)}-{_next_stamp()}"
