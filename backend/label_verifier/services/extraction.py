"""Label field extraction via a vision model.

The extraction model reads the label image and returns raw field strings
exactly as printed. No interpretation happens here; comparison against the
application data is done by the verification service.
"""

import asyncio
import base64
import random
import time
from typing import Dict, Optional
import logging

import anthropic

from .comparison import FieldKind
from ..config import get_settings, Settings

logger = logging.getLogger(__name__)

# Retry backoff; replaced in tests
_backoff_sleep = asyncio.sleep


EXTRACTION_PROMPT = (
    "Analyze this alcohol beverage label image and extract each field exactly as it "
    "appears on the label, preserving capitalization and punctuation. If a field is "
    "not visible or not legible, use null. For the government warning, capture the "
    "COMPLETE statement including the \"GOVERNMENT WARNING:\" prefix."
)

_FIELD_DESCRIPTIONS = {
    FieldKind.BRAND_NAME: "The product brand name",
    FieldKind.CLASS_TYPE: "Class or type designation, e.g. 'Kentucky Straight Bourbon Whiskey', 'Red Wine', 'Lager'",
    FieldKind.ALCOHOL_CONTENT: "Alcohol statement, e.g. '45% Alc./Vol.' or '12.5% ABV'",
    FieldKind.NET_CONTENTS: "Volume statement, e.g. '750 mL' or '12 FL OZ'",
    FieldKind.PRODUCER_NAME_ADDRESS: "Bottler/producer name and address including city and state",
    FieldKind.COUNTRY_OF_ORIGIN: "Country of origin if shown",
    FieldKind.GOVERNMENT_WARNING: "The complete health warning statement exactly as printed",
}

EXTRACT_TOOL = {
    "name": "extract_label_data",
    "description": "Extract structured data from an alcohol beverage label image.",
    "input_schema": {
        "type": "object",
        "properties": {
            kind.value: {"type": ["string", "null"], "description": description}
            for kind, description in _FIELD_DESCRIPTIONS.items()
        },
        "required": [kind.value for kind in FieldKind],
    },
}


class ExtractionError(Exception):
    """Raised when label fields could not be extracted."""


class LabelExtractor:
    """Calls the vision model and maps its tool output to field kinds."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client: Optional[anthropic.AsyncAnthropic] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.anthropic_api_key)

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Lazy-initialize the client so settings can be overridden first."""
        if self._client is None:
            if not self.is_configured:
                raise ExtractionError("ANTHROPIC_API_KEY is not set")
            self._client = anthropic.AsyncAnthropic(
                api_key=self.settings.anthropic_api_key,
                timeout=self.settings.extraction_timeout_seconds,
                max_retries=0,  # retried below
            )
        return self._client

    async def extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        label_id: str = "label",
    ) -> Dict[FieldKind, Optional[str]]:
        """
        Extract raw field text from a label image.

        Returns:
            Mapping of every FieldKind to its text, or None when absent

        Raises:
            ExtractionError: on missing configuration, API failure after
                retries, or a response without the expected tool output
        """
        start = time.time()
        tool_input = await self._call_with_retries(image_bytes, mime_type, label_id)

        fields = {}
        for kind in FieldKind:
            value = tool_input.get(kind.value)
            if isinstance(value, str) and value.strip():
                fields[kind] = value
            else:
                fields[kind] = None

        found = sum(1 for v in fields.values() if v is not None)
        logger.info(f"[extract] {label_id}: {found}/{len(fields)} fields ({int((time.time() - start) * 1000)}ms)")
        return fields

    async def _call_with_retries(self, image_bytes: bytes, mime_type: str, label_id: str) -> dict:
        """Retry on 429 and 5xx errors with exponential backoff + jitter."""
        max_retries = self.settings.extraction_max_retries
        for attempt in range(max_retries):
            try:
                return await self._call_model(image_bytes, mime_type, label_id)
            except anthropic.RateLimitError as e:
                if attempt == max_retries - 1:
                    raise ExtractionError(f"Extraction rate limited: {e}") from e
                retry_after = _retry_after(e, default=2 ** attempt)
                await _backoff_sleep(retry_after + random.uniform(0, 1 + attempt))
            except anthropic.APIStatusError as e:
                if e.status_code >= 500 and attempt < max_retries - 1:
                    await _backoff_sleep(2 ** attempt + random.uniform(0, 1 + attempt))
                else:
                    raise ExtractionError(f"Extraction service error ({e.status_code}): {e}") from e
            except anthropic.APIConnectionError as e:
                if attempt == max_retries - 1:
                    raise ExtractionError(f"Extraction service unreachable: {e}") from e
                await _backoff_sleep(2 ** attempt + random.uniform(0, 1 + attempt))

        raise ExtractionError("Extraction failed: no attempts made")

    async def _call_model(self, image_bytes: bytes, mime_type: str, label_id: str) -> dict:
        """Single API call with tool use for structured output."""
        b64 = base64.standard_b64encode(image_bytes).decode("utf-8")
        logger.debug(f"[extract] {label_id} model={self.settings.extraction_model} payload={len(image_bytes) / 1024:.0f}KB")

        response = await self._get_client().messages.create(
            model=self.settings.extraction_model,
            max_tokens=self.settings.extraction_max_tokens,
            tools=[EXTRACT_TOOL],
            tool_choice={"type": "tool", "name": EXTRACT_TOOL["name"]},
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": "image/jpeg" if mime_type == "image/jpg" else mime_type,
                                "data": b64,
                            },
                        },
                        {"type": "text", "text": EXTRACTION_PROMPT},
                    ],
                }
            ],
        )
        return _extract_tool_input(response)


def _extract_tool_input(response) -> dict:
    """Pull the extract_label_data tool_use block out of a response."""
    for block in response.content:
        if (
            getattr(block, "type", None) == "tool_use"
            and getattr(block, "name", None) == EXTRACT_TOOL["name"]
        ):
            return dict(block.input)
    raise ExtractionError("No extract_label_data tool_use block in response")


def _retry_after(error: anthropic.APIStatusError, default: float) -> float:
    headers = getattr(getattr(error, "response", None), "headers", None) or {}
    try:
        return float(headers.get("retry-after", default))
    except (TypeError, ValueError):
        return float(default)
