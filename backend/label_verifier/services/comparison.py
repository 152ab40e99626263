"""Per-field comparison of expected application values against label text.

Every comparator is a pure function of (expected, extracted) returning a
FieldVerdict. Dispatch from field kind to comparator is a plain mapping;
kinds without an entry fall back to exact text matching.
"""

from typing import Callable, Dict, Optional, Union
from dataclasses import dataclass
from enum import Enum
import logging

from .normalization import normalize_text, normalize_whitespace, is_blank
from .units import extract_percentage, extract_volume

logger = logging.getLogger(__name__)


# Health warning statement required by 27 CFR Part 16
GOVERNMENT_WARNING_TEXT = (
    "GOVERNMENT WARNING: (1) According to the Surgeon General, women should not "
    "drink alcoholic beverages during pregnancy because of the risk of birth defects. "
    "(2) Consumption of alcoholic beverages impairs your ability to drive a car or "
    "operate machinery, and may cause health problems."
)

GOVERNMENT_WARNING_PREFIX = "GOVERNMENT WARNING:"


class FieldKind(str, Enum):
    """Label fields subject to verification."""
    BRAND_NAME = "brand_name"
    CLASS_TYPE = "class_type"
    ALCOHOL_CONTENT = "alcohol_content"
    NET_CONTENTS = "net_contents"
    PRODUCER_NAME_ADDRESS = "producer_name_address"
    COUNTRY_OF_ORIGIN = "country_of_origin"
    GOVERNMENT_WARNING = "government_warning"

    @property
    def display_name(self) -> str:
        return FIELD_DISPLAY_NAMES[self]


FIELD_DISPLAY_NAMES = {
    FieldKind.BRAND_NAME: "Brand Name",
    FieldKind.CLASS_TYPE: "Class/Type",
    FieldKind.ALCOHOL_CONTENT: "Alcohol Content",
    FieldKind.NET_CONTENTS: "Net Contents",
    FieldKind.PRODUCER_NAME_ADDRESS: "Producer Name & Address",
    FieldKind.COUNTRY_OF_ORIGIN: "Country of Origin",
    FieldKind.GOVERNMENT_WARNING: "Government Warning",
}


class VerdictStatus(str, Enum):
    """Outcome of comparing one field."""
    MATCH = "match"
    MISMATCH = "mismatch"
    NOT_FOUND = "not_found"
    PARTIAL_MATCH = "partial_match"


@dataclass(frozen=True)
class FieldVerdict:
    """Result of comparing one expected value to one extracted value."""
    status: VerdictStatus
    details: Optional[str] = None


Comparator = Callable[[str, Optional[str]], FieldVerdict]


def exact_match(expected: str, extracted: Optional[str]) -> FieldVerdict:
    """
    Case, whitespace and punctuation insensitive text match.

    Used for brand name, class/type, producer and country of origin.
    """
    if is_blank(extracted):
        return FieldVerdict(VerdictStatus.NOT_FOUND)

    if normalize_text(expected) == normalize_text(extracted):
        return FieldVerdict(VerdictStatus.MATCH)

    return FieldVerdict(
        VerdictStatus.MISMATCH,
        details=f'Expected: "{expected}", Got: "{extracted}"',
    )


def alcohol_match(expected: str, extracted: Optional[str]) -> FieldVerdict:
    """
    Compare alcohol content by percentage value.

    "45% Alc./Vol." matches "45% ABV". No tolerance: 45% vs 44.9% is a
    mismatch. Falls back to exact_match when either side has no percentage.
    """
    if is_blank(extracted):
        return FieldVerdict(VerdictStatus.NOT_FOUND)

    expected_percent = extract_percentage(expected)
    extracted_percent = extract_percentage(extracted)

    if expected_percent is None or extracted_percent is None:
        return exact_match(expected, extracted)

    if expected_percent == extracted_percent:
        return FieldVerdict(VerdictStatus.MATCH)

    return FieldVerdict(
        VerdictStatus.MISMATCH,
        details=f"Expected: {expected}, Got: {extracted}",
    )


def volume_match(expected: str, extracted: Optional[str]) -> FieldVerdict:
    """
    Compare net contents by numeric value and unit.

    "750 mL" matches "750ml" and "750 ML"; "750 mL" vs "700 mL" is a
    mismatch. Falls back to exact_match when either side does not parse.
    """
    if is_blank(extracted):
        return FieldVerdict(VerdictStatus.NOT_FOUND)

    expected_volume = extract_volume(expected)
    extracted_volume = extract_volume(extracted)

    if expected_volume and extracted_volume:
        if expected_volume == extracted_volume:
            return FieldVerdict(VerdictStatus.MATCH)
        return FieldVerdict(
            VerdictStatus.MISMATCH,
            details=f'Expected: "{expected}", Got: "{extracted}"',
        )

    return exact_match(expected, extracted)


def warning_match(expected: str, extracted: Optional[str]) -> FieldVerdict:
    """
    Strict word-for-word check of the government warning statement.

    The "GOVERNMENT WARNING:" prefix must be in capitals. Body text must
    match exactly apart from whitespace; an all-caps transcription of the
    whole statement is also accepted.
    """
    if is_blank(extracted):
        return FieldVerdict(
            VerdictStatus.NOT_FOUND,
            details="Government warning not found on label",
        )

    expected_text = expected or GOVERNMENT_WARNING_TEXT

    if GOVERNMENT_WARNING_PREFIX not in extracted:
        if "government warning" in extracted.lower():
            return FieldVerdict(
                VerdictStatus.MISMATCH,
                details=f'"{GOVERNMENT_WARNING_PREFIX}" must be in all capital letters',
            )

    normalized_expected = normalize_whitespace(expected_text)
    normalized_extracted = normalize_whitespace(extracted)

    if normalized_expected == normalized_extracted:
        return FieldVerdict(VerdictStatus.MATCH)

    if normalized_expected.upper() == normalized_extracted.upper():
        return FieldVerdict(VerdictStatus.MATCH)

    return FieldVerdict(
        VerdictStatus.MISMATCH,
        details="Government warning text does not match required format. "
                "Must match word-for-word including punctuation.",
    )


COMPARATORS: Dict[FieldKind, Comparator] = {
    FieldKind.BRAND_NAME: exact_match,
    FieldKind.CLASS_TYPE: exact_match,
    FieldKind.ALCOHOL_CONTENT: alcohol_match,
    FieldKind.NET_CONTENTS: volume_match,
    FieldKind.PRODUCER_NAME_ADDRESS: exact_match,
    FieldKind.COUNTRY_OF_ORIGIN: exact_match,
    FieldKind.GOVERNMENT_WARNING: warning_match,
}


def resolve_field_kind(field_kind: Union[FieldKind, str]) -> Union[FieldKind, str]:
    """Return the FieldKind for a known name, or the name unchanged."""
    try:
        return FieldKind(field_kind)
    except ValueError:
        return field_kind


def compare_field(
    field_kind: Union[FieldKind, str],
    expected: Optional[str],
    extracted: Optional[str],
) -> FieldVerdict:
    """
    Compare a single field between expected and extracted values.

    A blank expected value means the field is not checked and always
    matches. Unknown field kinds use exact text matching.
    """
    if is_blank(expected):
        return FieldVerdict(VerdictStatus.MATCH)

    comparator = COMPARATORS.get(resolve_field_kind(field_kind), exact_match)
    verdict = comparator(expected, extracted)

    logger.debug(f"Compared {field_kind}: '{extracted}' vs '{expected}' -> {verdict.status.value}")
    return verdict
