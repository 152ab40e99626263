"""API route definitions."""

import time
from fastapi import APIRouter, Depends, UploadFile, File, HTTPException, Query
from fastapi.responses import Response
from typing import List
import logging

from ..models import (
    VerifyRequest,
    CompareRequest,
    VerifyResponse,
    VerificationResult,
    FieldResult,
    ExtractedValues,
    ErrorResponse,
    HealthResponse,
    BatchVerifyRequest,
    BatchVerifyResponse,
    BatchLabelResult,
)
from ..services import (
    LabelExtractor,
    ExtractionError,
    VerificationService,
    LabelVerification,
    CSVParser,
    BatchItem,
    BatchProcessor,
    BatchSummary,
    decode_data_url,
    validate_image,
    detect_mime_type,
    mime_type_for_filename,
    export_results_csv,
    generate_csv_template,
)
from ..config import get_settings
from .. import __version__

logger = logging.getLogger(__name__)
router = APIRouter()

# Initialize services
label_extractor = LabelExtractor()
verification_service = VerificationService()
csv_parser = CSVParser()
batch_processor = BatchProcessor(verification_service)


def get_label_extractor() -> LabelExtractor:
    """Extraction client dependency (overridden in tests)."""
    return label_extractor


def _to_verification_result(verification: LabelVerification, processing_time_ms: int) -> VerificationResult:
    """Convert a service-level verification into the response model."""
    return VerificationResult(
        overall_status=verification.overall_status,
        fields=[
            FieldResult(
                field_kind=str(getattr(f.field_kind, "value", f.field_kind)),
                field_name=f.field_name,
                status=f.status,
                expected_value=f.expected_value,
                extracted_value=f.extracted_value,
                details=f.details,
            )
            for f in verification.fields
        ],
        summary=verification.summary,
        processing_time_ms=processing_time_ms,
    )


def _batch_response(summary: BatchSummary, start_time: float, export: bool):
    """Build the JSON response for a batch, or its CSV export."""
    if export:
        return Response(
            content=export_results_csv(summary),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="verification-results.csv"'},
        )

    results = []
    for record in summary.records:
        results.append(BatchLabelResult(
            label_id=record.label_id,
            success=record.success,
            beverage_type=record.beverage_type,
            overall_status=record.overall_status,
            result=(
                _to_verification_result(record.verification, record.processing_time_ms)
                if record.verification else None
            ),
            extracted=ExtractedValues.from_field_kinds(record.extracted) if record.extracted else None,
            error=record.error,
        ))

    return BatchVerifyResponse(
        success=True,
        total_labels=summary.total_labels,
        passed=summary.passed,
        failed=summary.failed,
        review_needed=summary.review_needed,
        results=results,
        processing_time_ms=int((time.time() - start_time) * 1000),
    )


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(extractor: LabelExtractor = Depends(get_label_extractor)):
    """Check API health and extraction service configuration."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        extraction_ready=extractor.is_configured
    )


@router.post(
    "/verify",
    response_model=VerifyResponse,
    responses={
        500: {"model": ErrorResponse, "description": "Processing error"}
    },
    tags=["Verification"]
)
async def verify_label(
    request: VerifyRequest,
    extractor: LabelExtractor = Depends(get_label_extractor),
):
    """
    Verify a single label image against application data.

    The image is sent to the extraction service and every field with an
    expected value is compared. The government warning is always checked.
    """
    start_time = time.time()

    try:
        image_bytes, mime_type = decode_data_url(request.image)
    except ValueError as e:
        return VerifyResponse(success=False, error=str(e))

    is_valid, error_msg = validate_image(image_bytes, mime_type)
    if not is_valid:
        return VerifyResponse(success=False, error=error_msg)

    mime_type = detect_mime_type(image_bytes) or mime_type

    if not extractor.is_configured:
        return VerifyResponse(
            success=False,
            error="Extraction service not configured. Set ANTHROPIC_API_KEY."
        )

    try:
        extract_start = time.time()
        extracted = await extractor.extract(image_bytes, mime_type)
        extract_ms = int((time.time() - extract_start) * 1000)
    except ExtractionError as e:
        logger.error(f"Extraction failed: {e}")
        return VerifyResponse(success=False, error=f"Failed to extract label data: {e}")
    except Exception as e:
        logger.exception(f"Error processing image: {e}")
        return VerifyResponse(success=False, error=f"Error processing image: {str(e)}")

    verify_start = time.time()
    verification = verification_service.verify(request.expected_values.by_field_kind(), extracted)
    verify_ms = int((time.time() - verify_start) * 1000)

    total_time = int((time.time() - start_time) * 1000)
    logger.info(f"Timing breakdown: extract={extract_ms}ms, verify={verify_ms}ms, total={total_time}ms")

    return VerifyResponse(
        success=True,
        result=_to_verification_result(verification, total_time),
        beverage_type=request.expected_values.beverage_type,
        extracted=ExtractedValues.from_field_kinds(extracted),
        error=None
    )


@router.post(
    "/compare",
    response_model=VerifyResponse,
    tags=["Verification"]
)
async def compare_values(request: CompareRequest):
    """
    Verify already-extracted label text against application data.

    Skips the extraction service; useful when the label text comes from
    another source.
    """
    start_time = time.time()
    verification = verification_service.verify(
        request.expected_values.by_field_kind(),
        request.extracted_values.by_field_kind(),
    )
    return VerifyResponse(
        success=True,
        result=_to_verification_result(verification, int((time.time() - start_time) * 1000)),
        beverage_type=request.expected_values.beverage_type,
        extracted=request.extracted_values,
        error=None
    )


@router.post(
    "/verify/batch",
    response_model=BatchVerifyResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        200: {"content": {"text/csv": {}}, "description": "Batch results (CSV when export=true)"},
    },
    tags=["Verification"]
)
async def verify_batch(
    request: BatchVerifyRequest,
    export: bool = Query(False, description="Return results as CSV"),
    extractor: LabelExtractor = Depends(get_label_extractor),
):
    """
    Verify multiple label images, each with its own application data.

    A label that cannot be processed is reported as failed with no field
    results; it still counts toward the totals.
    """
    start_time = time.time()
    settings = get_settings()

    if len(request.labels) > settings.max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Too many labels. Maximum batch size is {settings.max_batch_size}."
        )

    items = []
    for label in request.labels:
        try:
            image_bytes, mime_type = decode_data_url(label.image)
        except ValueError as e:
            items.append(BatchItem(
                label_id=label.label_id,
                expected=label.expected_values.by_field_kind(),
                error=str(e),
                beverage_type=label.expected_values.beverage_type.value,
            ))
            continue
        items.append(BatchItem(
            label_id=label.label_id,
            expected=label.expected_values.by_field_kind(),
            image_bytes=image_bytes,
            mime_type=mime_type,
            beverage_type=label.expected_values.beverage_type.value,
        ))

    summary = await batch_processor.process_batch(items, extractor)
    return _batch_response(summary, start_time, export)


@router.post(
    "/verify/batch/csv",
    response_model=BatchVerifyResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        200: {"content": {"text/csv": {}}, "description": "Batch results (CSV when export=true)"},
    },
    tags=["Verification"]
)
async def verify_batch_csv(
    images: List[UploadFile] = File(..., description="Label image files"),
    csv_file: UploadFile = File(..., description="CSV file with application data"),
    export: bool = Query(False, description="Return results as CSV"),
    extractor: LabelExtractor = Depends(get_label_extractor),
):
    """
    Verify multiple label images against application data from CSV.

    CSV format:
    - Required column: filename
    - Optional columns: brand_name, class_type, alcohol_content, net_contents,
      producer_name_address, country_of_origin, beverage_type

    Example CSV:
    ```
    filename,brand_name,alcohol_content,net_contents
    label1.png,OLD TOM DISTILLERY,45% Alc./Vol.,750 mL
    label2.png,JACK DANIELS,40% Alc./Vol.,1 L
    ```

    CSV rows without a matching image are reported as failed labels.
    """
    start_time = time.time()
    settings = get_settings()

    if len(images) > settings.max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files. Maximum batch size is {settings.max_batch_size} files."
        )

    try:
        csv_content = (await csv_file.read()).decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=400,
            detail="CSV file must be UTF-8 encoded"
        )

    csv_rows, csv_errors = csv_parser.parse(csv_content)

    if not csv_rows:
        error_messages = [f"Row {e.row_number}: {e.field} - {e.message}" for e in csv_errors[:5]]
        raise HTTPException(
            status_code=400,
            detail=f"CSV validation failed: {'; '.join(error_messages) or 'no data rows'}"
        )

    if len(csv_rows) > settings.max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Too many CSV rows. Maximum batch size is {settings.max_batch_size}."
        )

    image_data = {}
    for upload_file in images:
        image_data[upload_file.filename or "unknown"] = await upload_file.read()

    _, match_errors = csv_parser.validate_filenames_match(csv_rows, list(image_data.keys()))
    for error in csv_errors + match_errors:
        logger.warning(f"Batch CSV row {error.row_number}: {error.field} - {error.message}")

    items = [
        BatchItem(
            label_id=row.filename,
            expected=row.expected_values(),
            image_bytes=image_data.get(row.filename),
            mime_type=mime_type_for_filename(row.filename),
            beverage_type=row.beverage_type,
        )
        for row in csv_rows
    ]

    summary = await batch_processor.process_batch(items, extractor)
    return _batch_response(summary, start_time, export)


@router.get("/batch/template", tags=["Batch"])
async def batch_template():
    """Download a CSV template for batch verification."""
    return Response(
        content=generate_csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="batch-template.csv"'},
    )
