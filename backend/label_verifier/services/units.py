"""Numeric parsers for alcohol content and net contents statements."""

import re
from typing import Optional
from dataclasses import dataclass

from .normalization import normalize_whitespace

# ASCII digits only
_PERCENT_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*%")
_VOLUME_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*(ml|l|oz|fl\s*oz)", re.IGNORECASE)


@dataclass(frozen=True)
class Volume:
    """A parsed net contents statement."""
    value: float
    unit: str


def extract_percentage(text: str) -> Optional[float]:
    """
    Extract the first percentage from text like '45% Alc./Vol.'.

    Returns None when no number followed by '%' is present. The value is
    not range-checked.
    """
    match = _PERCENT_RE.search(text)
    return float(match.group(1)) if match else None


def extract_volume(text: str) -> Optional[Volume]:
    """
    Extract value and unit from text like '750 mL' or '12 FL OZ'.

    The unit is lowercased with internal whitespace removed, so
    '12 FL OZ' and '12 fl oz' both yield Volume(12.0, 'floz').
    """
    normalized = normalize_whitespace(text.lower())
    match = _VOLUME_RE.search(normalized)
    if not match:
        return None

    unit = re.sub(r"\s+", "", match.group(2)).lower()
    return Volume(value=float(match.group(1)), unit=unit)
