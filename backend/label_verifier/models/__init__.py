"""Pydantic models for request/response schemas."""

from .schemas import (
    BeverageType,
    ExpectedValues,
    ExtractedValues,
    FieldResult,
    VerificationResult,
    VerifyRequest,
    CompareRequest,
    VerifyResponse,
    BatchLabel,
    BatchVerifyRequest,
    BatchLabelResult,
    BatchVerifyResponse,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    "BeverageType",
    "ExpectedValues",
    "ExtractedValues",
    "FieldResult",
    "VerificationResult",
    "VerifyRequest",
    "CompareRequest",
    "VerifyResponse",
    "BatchLabel",
    "BatchVerifyRequest",
    "BatchLabelResult",
    "BatchVerifyResponse",
    "ErrorResponse",
    "HealthResponse",
]
