"""Batch processing service for multiple label verification."""

import asyncio
import csv
import io
import time
import logging
from typing import Dict, List, Tuple, Optional, Sequence, Any
from dataclasses import dataclass, field, replace

from .comparison import FieldKind, VerdictStatus
from .extraction import LabelExtractor
from .uploads import validate_image, detect_mime_type
from .verification import VerificationService, LabelVerification, FieldVerification, OverallStatus
from ..config import get_settings

logger = logging.getLogger(__name__)


BEVERAGE_TYPES = ("wine", "beer", "spirits")


@dataclass
class CSVRow:
    """Parsed and validated CSV row."""
    filename: str
    brand_name: Optional[str] = None
    class_type: Optional[str] = None
    alcohol_content: Optional[str] = None
    net_contents: Optional[str] = None
    producer_name_address: Optional[str] = None
    country_of_origin: Optional[str] = None
    beverage_type: str = "spirits"
    row_number: int = 0

    def expected_values(self) -> Dict[FieldKind, Optional[str]]:
        """Expected values keyed by field kind, for the verification service."""
        return {
            FieldKind.BRAND_NAME: self.brand_name,
            FieldKind.CLASS_TYPE: self.class_type,
            FieldKind.ALCOHOL_CONTENT: self.alcohol_content,
            FieldKind.NET_CONTENTS: self.net_contents,
            FieldKind.PRODUCER_NAME_ADDRESS: self.producer_name_address,
            FieldKind.COUNTRY_OF_ORIGIN: self.country_of_origin,
        }


@dataclass
class CSVValidationError:
    """Error from CSV validation."""
    row_number: int
    field: str
    message: str


class CSVParser:
    """Parse and validate batch CSV files."""

    REQUIRED_COLUMNS = {"filename"}

    OPTIONAL_COLUMNS = {
        "brand_name",
        "class_type",
        "alcohol_content",
        "net_contents",
        "producer_name_address",
        "country_of_origin",
        "beverage_type",
    }

    # Header names from the downloadable template (lowercased)
    COLUMN_ALIASES = {
        "imagefilename": "filename",
        "brandname": "brand_name",
        "classtype": "class_type",
        "alcoholcontent": "alcohol_content",
        "netcontents": "net_contents",
        "producernameaddress": "producer_name_address",
        "countryoforigin": "country_of_origin",
        "beveragetype": "beverage_type",
    }

    VALID_COLUMNS = REQUIRED_COLUMNS | OPTIONAL_COLUMNS

    def _normalize_column(self, name: Optional[str]) -> str:
        key = (name or "").lower().strip()
        return self.COLUMN_ALIASES.get(key, key)

    def parse(self, csv_content: str) -> Tuple[List[CSVRow], List[CSVValidationError]]:
        """
        Parse CSV content and return validated rows.

        Args:
            csv_content: CSV file content as string

        Returns:
            Tuple of (valid_rows, errors)
        """
        rows: List[CSVRow] = []
        errors: List[CSVValidationError] = []

        try:
            reader = csv.DictReader(io.StringIO(csv_content.lstrip("\ufeff")))

            if reader.fieldnames is None:
                errors.append(CSVValidationError(
                    row_number=0,
                    field="header",
                    message="CSV file is empty or has no header"
                ))
                return rows, errors

            fieldnames = [self._normalize_column(f) for f in reader.fieldnames]

            missing_required = self.REQUIRED_COLUMNS - set(fieldnames)
            if missing_required:
                errors.append(CSVValidationError(
                    row_number=0,
                    field="header",
                    message=f"Missing required columns: {', '.join(sorted(missing_required))}"
                ))
                return rows, errors

            # Warn about unknown columns (but don't fail)
            unknown_columns = set(fieldnames) - self.VALID_COLUMNS
            if unknown_columns:
                logger.warning(f"Unknown CSV columns will be ignored: {unknown_columns}")

            for row_num, row in enumerate(reader, start=2):  # Start at 2 (1-indexed + header)
                normalized_row = {
                    self._normalize_column(k): (v or "").strip()
                    for k, v in row.items()
                    if k is not None and isinstance(v, str)
                }

                filename = normalized_row.get("filename", "")
                if not filename:
                    errors.append(CSVValidationError(
                        row_number=row_num,
                        field="filename",
                        message="Filename is required"
                    ))
                    continue

                beverage_type = normalized_row.get("beverage_type", "").lower() or "spirits"
                if beverage_type not in BEVERAGE_TYPES:
                    errors.append(CSVValidationError(
                        row_number=row_num,
                        field="beverage_type",
                        message=f"Invalid beverage type: '{beverage_type}'. Use wine, beer or spirits."
                    ))
                    beverage_type = "spirits"

                rows.append(CSVRow(
                    filename=filename,
                    brand_name=normalized_row.get("brand_name") or None,
                    class_type=normalized_row.get("class_type") or None,
                    alcohol_content=normalized_row.get("alcohol_content") or None,
                    net_contents=normalized_row.get("net_contents") or None,
                    producer_name_address=normalized_row.get("producer_name_address") or None,
                    country_of_origin=normalized_row.get("country_of_origin") or None,
                    beverage_type=beverage_type,
                    row_number=row_num,
                ))

        except csv.Error as e:
            errors.append(CSVValidationError(
                row_number=0,
                field="csv",
                message=f"CSV parsing error: {str(e)}"
            ))

        return rows, errors

    def validate_filenames_match(
        self,
        csv_rows: List[CSVRow],
        uploaded_filenames: List[str]
    ) -> Tuple[List[CSVRow], List[CSVValidationError]]:
        """
        Validate that CSV filenames match uploaded files.

        Returns:
            Tuple of (matched_rows, errors for unmatched)
        """
        uploaded_set = set(uploaded_filenames)
        matched_rows = []
        errors = []

        for row in csv_rows:
            if row.filename in uploaded_set:
                matched_rows.append(row)
            else:
                errors.append(CSVValidationError(
                    row_number=row.row_number,
                    field="filename",
                    message=f"Image file not found: '{row.filename}'"
                ))

        # Check for uploaded files without CSV rows
        csv_filenames = {row.filename for row in csv_rows}
        for filename in sorted(uploaded_set - csv_filenames):
            errors.append(CSVValidationError(
                row_number=0,
                field="filename",
                message=f"Uploaded image has no CSV entry: '{filename}'"
            ))

        return matched_rows, errors


@dataclass(frozen=True)
class BatchRecord:
    """Outcome for one label in a batch."""
    label_id: str
    overall_status: OverallStatus
    verification: Optional[LabelVerification] = None
    extracted: Optional[Dict[FieldKind, Optional[str]]] = None
    error: Optional[str] = None
    processing_time_ms: int = 0
    beverage_type: str = "spirits"

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def fields(self) -> List[FieldVerification]:
        return list(self.verification.fields) if self.verification else []

    @classmethod
    def failed(cls, label_id: str, error: str, processing_time_ms: int = 0) -> "BatchRecord":
        """Record for a label whose pipeline broke before producing verdicts."""
        return cls(
            label_id=label_id,
            overall_status=OverallStatus.FAIL,
            error=error,
            processing_time_ms=processing_time_ms,
        )


@dataclass(frozen=True)
class BatchSummary:
    """Counts by overall status plus per-label records in input order."""
    total_labels: int
    passed: int
    failed: int
    review_needed: int
    records: Tuple[BatchRecord, ...] = field(default_factory=tuple)


def aggregate_batch(records: Sequence[BatchRecord]) -> BatchSummary:
    """
    Count per-label outcomes, keeping records in their original order.

    Every record is counted exactly once, so
    passed + failed + review_needed == total_labels.
    """
    passed = failed = review_needed = 0
    for record in records:
        if record.overall_status == OverallStatus.PASS:
            passed += 1
        elif record.overall_status == OverallStatus.REVIEW_NEEDED:
            review_needed += 1
        else:
            failed += 1

    return BatchSummary(
        total_labels=len(records),
        passed=passed,
        failed=failed,
        review_needed=review_needed,
        records=tuple(records),
    )


@dataclass
class BatchItem:
    """One label to verify: image plus expected application values."""
    label_id: str
    expected: Dict[Any, Optional[str]]
    image_bytes: Optional[bytes] = None
    mime_type: str = "image/jpeg"
    error: Optional[str] = None  # Set when the upload was already rejected
    beverage_type: str = "spirits"


class BatchProcessor:
    """Run extraction and verification for many labels concurrently."""

    def __init__(self, verification_service: Optional[VerificationService] = None):
        self.settings = get_settings()
        self.verification_service = verification_service or VerificationService()

    async def process_batch(
        self,
        items: Sequence[BatchItem],
        extractor: LabelExtractor,
        max_concurrency: Optional[int] = None,
    ) -> BatchSummary:
        """
        Process a batch of labels.

        Labels run concurrently up to max_concurrency (defaults to config).
        A label that fails anywhere before verdicts exist becomes a failed
        record with no field results; it is never dropped.

        Raises:
            ValueError: if the batch exceeds the configured size limit
        """
        if len(items) > self.settings.max_batch_size:
            raise ValueError(
                f"Too many labels. Maximum batch size is {self.settings.max_batch_size}."
            )

        if max_concurrency is None:
            max_concurrency = self.settings.max_concurrent_extractions
        semaphore = asyncio.Semaphore(max(1, max_concurrency))

        async def run(item: BatchItem) -> BatchRecord:
            async with semaphore:
                record = await self._process_single_label(item, extractor)
            return replace(record, beverage_type=item.beverage_type)

        start_time = time.time()
        # gather returns results in input order regardless of completion order
        records = await asyncio.gather(*(run(item) for item in items))
        summary = aggregate_batch(records)

        logger.info(
            f"Batch of {summary.total_labels} processed in {int((time.time() - start_time) * 1000)}ms: "
            f"passed={summary.passed}, failed={summary.failed}, review={summary.review_needed}"
        )
        return summary

    async def _process_single_label(self, item: BatchItem, extractor: LabelExtractor) -> BatchRecord:
        start_time = time.time()

        if item.error:
            return BatchRecord.failed(item.label_id, item.error)
        if item.image_bytes is None:
            return BatchRecord.failed(item.label_id, f"Image file not found: {item.label_id}")

        try:
            is_valid, error_msg = validate_image(item.image_bytes, item.mime_type)
            if not is_valid:
                return BatchRecord.failed(item.label_id, error_msg)

            mime_type = detect_mime_type(item.image_bytes) or item.mime_type
            if mime_type != item.mime_type:
                logger.info(f"{item.label_id}: declared {item.mime_type}, image is {mime_type}")

            extracted = await extractor.extract(item.image_bytes, mime_type, item.label_id)
            verification = self.verification_service.verify(item.expected, extracted)
        except Exception as e:
            logger.exception(f"Error processing {item.label_id}: {e}")
            return BatchRecord.failed(
                item.label_id,
                f"Processing error: {str(e)}",
                processing_time_ms=int((time.time() - start_time) * 1000),
            )

        return BatchRecord(
            label_id=item.label_id,
            overall_status=verification.overall_status,
            verification=verification,
            extracted=extracted,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )


EXPORT_FIELD_COLUMNS = [(kind, f"{kind.display_name} Status") for kind in FieldKind]


def export_results_csv(summary: BatchSummary) -> str:
    """
    Export batch results as CSV, one line per label in batch order.

    Field status columns are blank for fields that were not checked.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(
        ["Image File", "Overall Status", "Processing Time (ms)"]
        + [header for _, header in EXPORT_FIELD_COLUMNS]
        + ["Issues"]
    )

    for record in summary.records:
        statuses = {f.field_kind: f.status.value for f in record.fields}
        if record.error:
            issues = record.error
        else:
            issues = "; ".join(
                f"{f.field_name}: {f.status.value}"
                for f in record.fields
                if f.status != VerdictStatus.MATCH
            )
        writer.writerow(
            [record.label_id, record.overall_status.value, record.processing_time_ms]
            + [statuses.get(kind, "") for kind, _ in EXPORT_FIELD_COLUMNS]
            + [issues]
        )

    return buffer.getvalue()


def generate_csv_template() -> str:
    """CSV template for batch upload: header plus one example row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([
        "filename",
        "brand_name",
        "class_type",
        "alcohol_content",
        "net_contents",
        "producer_name_address",
        "country_of_origin",
        "beverage_type",
    ])
    writer.writerow([
        "label1.jpg",
        "OLD TOM DISTILLERY",
        "Kentucky Straight Bourbon Whiskey",
        "45% Alc./Vol.",
        "750 mL",
        "Old Tom Distillery, Louisville, KY",
        "",
        "spirits",
    ])
    return buffer.getvalue()
