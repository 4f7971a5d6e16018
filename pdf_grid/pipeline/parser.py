"""
Decode the extraction service's text reply into a batch-local PageDataMap.

The reply is supposed to be a bare JSON object, but in practice it may be
fenced, carry stray // comment lines, start with prose, or be cut off when
the model hits its output limit. Repair strategies run in order after a
failed direct decode; each is pure (text -> object or None).
"""

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from pdf_grid.errors import ParseError
from pdf_grid.state import PageDataMap

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"```$")
_COMMENT_LINE_RE = re.compile(r"^[ \t]*//.*$", re.MULTILINE)

# Tried in order at each cut after a complete row or page, latest cut first.
_CLOSING_SUFFIXES = ("]}", "]]}", "}", "}}")

# Bracket stacks left open right after a complete row / page array closes.
_AFTER_ROW = ["{", "["]
_AFTER_PAGE = ["{"]


def clean_response(raw_text: str) -> str:
    """Strip fences, comment lines and any prose before the first '{'."""
    text = raw_text.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN_RE.sub("", text, count=1)
        text = _FENCE_CLOSE_RE.sub("", text).strip()
    text = _COMMENT_LINE_RE.sub("", text)
    first_brace = text.find("{")
    if first_brace != -1:
        text = text[first_brace:]
    return text


def _complete_cuts(text: str) -> list[int]:
    """Indices just past each ']' closing a whole row or page, in text order.

    Brackets inside string literals are ignored.
    """
    cuts: list[int] = []
    stack: list[str] = []
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append(ch)
        elif ch in "}]":
            if not stack:
                break
            stack.pop()
            if ch == "]" and stack in (_AFTER_ROW, _AFTER_PAGE):
                cuts.append(i + 1)

    return cuts


def _repair_truncated_rows(text: str) -> Any:
    # Latest cut first; an earlier one still recovers when the tail is malformed.
    for cut in reversed(_complete_cuts(text)):
        head = text[:cut]
        for suffix in _CLOSING_SUFFIXES:
            try:
                data = json.loads(head + suffix)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict):
                return data
    return None


_REPAIR_STRATEGIES: tuple[Callable[[str], Any], ...] = (
    _repair_truncated_rows,
)


def parse_response(raw_text: str) -> PageDataMap:
    """Decode a reply into {batch-local page key: rows}. Raises ParseError."""
    text = clean_response(raw_text)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("JSON decode failed (%s), attempting repair", exc)
    else:
        if not isinstance(data, dict):
            raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    for strategy in _REPAIR_STRATEGIES:
        repaired = strategy(text)
        if repaired is not None:
            logger.info("Repaired response with %s: %d page(s) recovered",
                        strategy.__name__, len(repaired))
            return repaired

    raise ParseError("JSON parse failed (truncated)", truncated=True)
