"""
Page-key arithmetic: batch-local -> document-global keys, and natural ordering.

The extraction service only ever sees a sub-document, so it labels pages
"1", "2", "3" relative to that slice. Only the orchestrator knows where the
slice starts, so the remapping lives here.
"""

import re
from collections.abc import Iterable

_NON_DIGIT_RE = re.compile(r"\D")


def _digits(key: str) -> str:
    return _NON_DIGIT_RE.sub("", key)


def to_global_key(window_start: int, local_key: str) -> str:
    """Map a batch-local page key to its key in the whole document.

    Non-numeric keys get a ``_batch_<first page>`` suffix so they can never
    collide with a plain page number.
    """
    if window_start < 0:
        raise ValueError(f"window_start must be >= 0, got {window_start}")

    digits = _digits(local_key)
    if digits:
        return str(window_start + int(digits))
    return f"{local_key}_batch_{window_start + 1}"


def numeric_key(page_key: str) -> int:
    """Sort key for page keys: "10" after "9", keys without digits first."""
    digits = _digits(page_key)
    return int(digits) if digits else 0


def sort_page_keys(keys: Iterable[str]) -> list[str]:
    return sorted(keys, key=numeric_key)
