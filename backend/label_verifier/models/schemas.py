"""Pydantic schemas for API requests and responses."""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, Optional

from ..services.comparison import FieldKind, VerdictStatus
from ..services.verification import OverallStatus


class BeverageType(str, Enum):
    """Beverage category declared on the application."""
    WINE = "wine"
    BEER = "beer"
    SPIRITS = "spirits"


class ExpectedValues(BaseModel):
    """Application data to verify against. Blank fields are not checked."""
    brand_name: Optional[str] = Field(None, description="Expected brand name")
    class_type: Optional[str] = Field(None, description="Expected class/type (e.g., Kentucky Straight Bourbon Whiskey)")
    alcohol_content: Optional[str] = Field(None, description="Expected alcohol statement (e.g., 45% Alc./Vol.)")
    net_contents: Optional[str] = Field(None, description="Expected net contents (e.g., 750 mL)")
    producer_name_address: Optional[str] = Field(None, description="Expected bottler/producer name and address")
    country_of_origin: Optional[str] = Field(None, description="Expected country of origin (imports only)")
    beverage_type: BeverageType = BeverageType.SPIRITS

    class Config:
        json_schema_extra = {
            "example": {
                "brand_name": "OLD TOM DISTILLERY",
                "class_type": "Kentucky Straight Bourbon Whiskey",
                "alcohol_content": "45% Alc./Vol.",
                "net_contents": "750 mL",
                "producer_name_address": "Old Tom Distillery, Louisville, KY",
                "country_of_origin": None,
                "beverage_type": "spirits"
            }
        }

    def by_field_kind(self) -> Dict[FieldKind, Optional[str]]:
        """Expected values keyed by field kind."""
        return {
            FieldKind.BRAND_NAME: self.brand_name,
            FieldKind.CLASS_TYPE: self.class_type,
            FieldKind.ALCOHOL_CONTENT: self.alcohol_content,
            FieldKind.NET_CONTENTS: self.net_contents,
            FieldKind.PRODUCER_NAME_ADDRESS: self.producer_name_address,
            FieldKind.COUNTRY_OF_ORIGIN: self.country_of_origin,
        }


class ExtractedValues(BaseModel):
    """Field text read from the label image; None when not found."""
    brand_name: Optional[str] = None
    class_type: Optional[str] = None
    alcohol_content: Optional[str] = None
    net_contents: Optional[str] = None
    producer_name_address: Optional[str] = None
    country_of_origin: Optional[str] = None
    government_warning: Optional[str] = None

    @classmethod
    def from_field_kinds(cls, values: Dict[FieldKind, Optional[str]]) -> "ExtractedValues":
        return cls(**{kind.value: values.get(kind) for kind in FieldKind})

    def by_field_kind(self) -> Dict[FieldKind, Optional[str]]:
        return {kind: getattr(self, kind.value) for kind in FieldKind}


class FieldResult(BaseModel):
    """Result for a single field verification."""
    field_kind: str
    field_name: str
    status: VerdictStatus
    expected_value: str
    extracted_value: Optional[str] = None
    details: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "field_kind": "brand_name",
                "field_name": "Brand Name",
                "status": "match",
                "expected_value": "Old Tom Distillery",
                "extracted_value": "OLD TOM DISTILLERY",
                "details": None
            }
        }


class VerificationResult(BaseModel):
    """Overall verification result for a label."""
    overall_status: OverallStatus
    fields: list[FieldResult]
    summary: str
    processing_time_ms: int

    class Config:
        json_schema_extra = {
            "example": {
                "overall_status": "pass",
                "fields": [],
                "summary": "✅ All fields verified successfully. Label matches application data.",
                "processing_time_ms": 1250
            }
        }


class VerifyRequest(BaseModel):
    """Request body for single label verification."""
    image: str = Field(..., min_length=1, description="Label image as a base64 data URL")
    expected_values: ExpectedValues


class CompareRequest(BaseModel):
    """Request body for verifying already-extracted label text."""
    expected_values: ExpectedValues
    extracted_values: ExtractedValues


class VerifyResponse(BaseModel):
    """Response for single label verification."""
    success: bool
    beverage_type: Optional[BeverageType] = None
    result: Optional[VerificationResult] = None
    extracted: Optional[ExtractedValues] = None
    error: Optional[str] = None


class BatchLabel(BaseModel):
    """One label in a JSON batch request."""
    label_id: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1, description="Label image as a base64 data URL")
    expected_values: ExpectedValues


class BatchVerifyRequest(BaseModel):
    """Request body for batch verification."""
    labels: list[BatchLabel] = Field(..., min_length=1)


class BatchLabelResult(BaseModel):
    """Result for a single label in batch verification."""
    label_id: str
    success: bool
    beverage_type: BeverageType = BeverageType.SPIRITS
    overall_status: OverallStatus
    result: Optional[VerificationResult] = None
    extracted: Optional[ExtractedValues] = None
    error: Optional[str] = None


class BatchVerifyResponse(BaseModel):
    """Response for batch verification."""
    success: bool
    total_labels: int
    passed: int
    failed: int
    review_needed: int
    results: list[BatchLabelResult]
    processing_time_ms: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "Invalid image format",
                "detail": "Allowed formats: JPEG, PNG, WEBP"
            }
        }


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    extraction_ready: bool
