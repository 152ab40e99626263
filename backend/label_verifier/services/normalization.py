"""Text normalization used by the field comparators.

Normalized strings are only used for equality checks. Values shown back to
the user are always the original, untouched strings.
"""

import re
from typing import Optional

_PUNCTUATION_RE = re.compile(r"[.,\-]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to a single space and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_text(text: str) -> str:
    """
    Canonicalize text for case/whitespace/punctuation-insensitive comparison.

    - Lowercase
    - Periods, commas and hyphens removed
    - Whitespace collapsed and trimmed

    Examples:
    - "Old Tom, Distillery." -> "old tom distillery"
    - "Kentucky  Straight-Bourbon" -> "kentucky straightbourbon"
    """
    text = text.lower()
    text = _PUNCTUATION_RE.sub("", text)
    return normalize_whitespace(text)


def is_blank(value: Optional[str]) -> bool:
    """True for None, empty or all-whitespace strings."""
    return value is None or value.strip() == ""
