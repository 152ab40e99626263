"""Shared fixtures and fakes for the test suite."""

import asyncio
import base64
import io

import pytest
from PIL import Image

from label_verifier.services.comparison import FieldKind, GOVERNMENT_WARNING_TEXT
from label_verifier.services.extraction import ExtractionError


EXPECTED = {
    FieldKind.BRAND_NAME: "Old Tom Distillery",
    FieldKind.CLASS_TYPE: "Kentucky Straight Bourbon Whiskey",
    FieldKind.ALCOHOL_CONTENT: "45% Alc./Vol.",
    FieldKind.NET_CONTENTS: "750 mL",
    FieldKind.PRODUCER_NAME_ADDRESS: "Old Tom Distillery, Louisville, KY",
}

MATCHING_EXTRACTION = {
    FieldKind.BRAND_NAME: "OLD TOM DISTILLERY",
    FieldKind.CLASS_TYPE: "Kentucky Straight Bourbon Whiskey",
    FieldKind.ALCOHOL_CONTENT: "45% ABV",
    FieldKind.NET_CONTENTS: "750ML",
    FieldKind.PRODUCER_NAME_ADDRESS: "Old Tom Distillery Louisville KY",
    FieldKind.COUNTRY_OF_ORIGIN: None,
    FieldKind.GOVERNMENT_WARNING: GOVERNMENT_WARNING_TEXT,
}


class FakeExtractor:
    """Stands in for LabelExtractor; returns canned fields per label id."""

    def __init__(self, results=None, failures=None, delays=None, configured=True):
        self.results = results or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.configured = configured
        self.calls = []
        self.mime_types = {}

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def extract(self, image_bytes, mime_type, label_id="label"):
        self.calls.append(label_id)
        self.mime_types[label_id] = mime_type
        await asyncio.sleep(self.delays.get(label_id, 0))
        if label_id in self.failures:
            raise ExtractionError(self.failures[label_id])
        return dict(self.results.get(label_id, MATCHING_EXTRACTION))


def make_image_bytes(width: int = 200, height: int = 120, image_format: str = "PNG") -> bytes:
    """Create a small in-memory image, PNG unless another format is given."""
    img = Image.new("RGB", (width, height), color="white")
    buffer = io.BytesIO()
    img.save(buffer, format=image_format)
    return buffer.getvalue()


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


@pytest.fixture
def png_bytes():
    """A valid PNG label image."""
    return make_image_bytes()


@pytest.fixture
def png_data_url(png_bytes):
    """A valid PNG label image as a data URL."""
    return to_data_url(png_bytes)
