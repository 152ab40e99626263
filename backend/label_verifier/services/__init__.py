"""Services for field comparison, verification, extraction, and batch processing."""

from .normalization import normalize_text, normalize_whitespace, is_blank
from .units import Volume, extract_percentage, extract_volume
from .comparison import (
    FieldKind,
    FieldVerdict,
    VerdictStatus,
    GOVERNMENT_WARNING_TEXT,
    COMPARATORS,
    compare_field,
    resolve_field_kind,
)
from .verification import (
    VerificationService,
    LabelVerification,
    FieldVerification,
    OverallStatus,
    aggregate_verdicts,
)
from .extraction import LabelExtractor, ExtractionError
from .uploads import decode_data_url, validate_image, detect_mime_type, mime_type_for_filename
from .batch import (
    CSVParser,
    CSVRow,
    CSVValidationError,
    BatchItem,
    BatchRecord,
    BatchSummary,
    BatchProcessor,
    aggregate_batch,
    export_results_csv,
    generate_csv_template,
)

__all__ = [
    "normalize_text",
    "normalize_whitespace",
    "is_blank",
    "Volume",
    "extract_percentage",
    "extract_volume",
    "FieldKind",
    "FieldVerdict",
    "VerdictStatus",
    "GOVERNMENT_WARNING_TEXT",
    "COMPARATORS",
    "compare_field",
    "resolve_field_kind",
    "VerificationService",
    "LabelVerification",
    "FieldVerification",
    "OverallStatus",
    "aggregate_verdicts",
    "LabelExtractor",
    "ExtractionError",
    "decode_data_url",
    "validate_image",
    "detect_mime_type",
    "mime_type_for_filename",
    "CSVParser",
    "CSVRow",
    "CSVValidationError",
    "BatchItem",
    "BatchRecord",
    "BatchSummary",
    "BatchProcessor",
    "aggregate_batch",
    "export_results_csv",
    "generate_csv_template",
]
