"""Verification service for comparing extracted fields against application data."""

from typing import Iterable, List, Mapping, Optional, Tuple, Union
from dataclasses import dataclass
from enum import Enum
import logging

from .comparison import (
    FieldKind,
    VerdictStatus,
    GOVERNMENT_WARNING_TEXT,
    compare_field,
    resolve_field_kind,
)
from .normalization import is_blank

logger = logging.getLogger(__name__)


class OverallStatus(str, Enum):
    """Overall outcome for one label."""
    PASS = "pass"
    FAIL = "fail"
    REVIEW_NEEDED = "review_needed"


_FAILING = {VerdictStatus.MISMATCH, VerdictStatus.NOT_FOUND}


@dataclass(frozen=True)
class FieldVerification:
    """Result of verifying a single field, with the values that were compared."""
    field_kind: Union[FieldKind, str]
    field_name: str
    status: VerdictStatus
    expected_value: str
    extracted_value: Optional[str]
    details: Optional[str] = None


@dataclass
class LabelVerification:
    """Complete verification result for one label."""
    overall_status: OverallStatus
    fields: List[FieldVerification]
    summary: str
    passed_count: int
    review_count: int
    failed_count: int


def _display_name(kind) -> str:
    if isinstance(kind, FieldKind):
        return kind.display_name
    return str(kind)


def _lookup(values: Mapping, kind: FieldKind) -> Optional[str]:
    value = values.get(kind)
    if value is None:
        value = values.get(kind.value)
    return value


def aggregate_verdicts(verdicts: Iterable) -> OverallStatus:
    """
    Combine field verdicts into one overall status.

    fail if any verdict is mismatch or not_found, else review_needed if any
    is partial_match, else pass. An empty sequence passes. Accepts anything
    with a ``status`` attribute (FieldVerdict, FieldVerification).
    """
    needs_review = False
    for verdict in verdicts:
        if verdict.status in _FAILING:
            return OverallStatus.FAIL
        if verdict.status == VerdictStatus.PARTIAL_MATCH:
            needs_review = True

    return OverallStatus.REVIEW_NEEDED if needs_review else OverallStatus.PASS


class VerificationService:
    """Compares extracted label text against expected application data."""

    def verify(
        self,
        expected: Mapping[str, Optional[str]],
        extracted: Mapping[str, Optional[str]],
    ) -> LabelVerification:
        """
        Verify extracted fields against expected values.

        Args:
            expected: Operator values keyed by FieldKind or its string value. Any government
                warning entry is ignored; the statutory text is always used.
            extracted: Label text keyed the same way; missing keys or None
                mean the field was not found on the label.

        Returns:
            LabelVerification with per-field and overall status
        """
        pairs = {}
        for kind in FieldKind:
            if kind == FieldKind.GOVERNMENT_WARNING:
                expected_value = GOVERNMENT_WARNING_TEXT
            else:
                expected_value = _lookup(expected, kind)
            pairs[kind] = (expected_value, _lookup(extracted, kind))

        return self.verify_pairs(pairs)

    def verify_pairs(
        self,
        pairs: Mapping[Union[FieldKind, str], Tuple[Optional[str], Optional[str]]],
    ) -> LabelVerification:
        """
        Verify a mapping of field kind -> (expected, extracted).

        Fields with a blank expected value are left out of the result.
        """
        fields = []
        for kind, (expected_value, extracted_value) in pairs.items():
            kind = resolve_field_kind(kind)
            if is_blank(expected_value):
                continue

            verdict = compare_field(kind, expected_value, extracted_value)
            fields.append(FieldVerification(
                field_kind=kind,
                field_name=_display_name(kind),
                status=verdict.status,
                expected_value=expected_value,
                extracted_value=extracted_value,
                details=verdict.details,
            ))

        overall_status = aggregate_verdicts(fields)
        logger.debug(f"Verified {len(fields)} fields -> {overall_status.value}")

        passed = sum(1 for f in fields if f.status == VerdictStatus.MATCH)
        review = sum(1 for f in fields if f.status == VerdictStatus.PARTIAL_MATCH)
        failed = sum(1 for f in fields if f.status in _FAILING)

        return LabelVerification(
            overall_status=overall_status,
            fields=fields,
            summary=self._generate_summary(fields, overall_status),
            passed_count=passed,
            review_count=review,
            failed_count=failed,
        )

    def _generate_summary(
        self,
        fields: List[FieldVerification],
        overall_status: OverallStatus
    ) -> str:
        """Generate human-readable summary."""
        if overall_status == OverallStatus.PASS:
            return "✅ All fields verified successfully. Label matches application data."

        issues = []
        for f in fields:
            if f.status == VerdictStatus.MISMATCH:
                issues.append(f"❌ {f.field_name}: does not match")
            elif f.status == VerdictStatus.NOT_FOUND:
                issues.append(f"❌ {f.field_name}: not found on label")
            elif f.status == VerdictStatus.PARTIAL_MATCH:
                issues.append(f"⚠️ {f.field_name}: partial match")

        if overall_status == OverallStatus.FAIL:
            header = "❌ Verification failed. Issues found:"
        else:
            header = "⚠️ Review recommended. Potential issues:"

        return header + "\n" + "\n".join(issues)
