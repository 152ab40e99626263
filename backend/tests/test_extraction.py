"""Tests for the vision-model extraction client."""

import asyncio
from types import SimpleNamespace

import anthropic
import httpx
import pytest
from label_verifier.config import Settings
from label_verifier.services import extraction
from label_verifier.services.comparison import FieldKind
from label_verifier.services.extraction import (
    EXTRACT_TOOL,
    ExtractionError,
    LabelExtractor,
)


REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def tool_response(**fields):
    block = SimpleNamespace(type="tool_use", name=EXTRACT_TOOL["name"], input=fields)
    return SimpleNamespace(content=[SimpleNamespace(type="text", text="ok"), block])


class FakeMessages:
    """Replays a scripted sequence of responses or exceptions."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def backoff_delays(monkeypatch):
    """Record retry delays instead of sleeping."""
    delays = []

    async def instant(seconds):
        delays.append(seconds)
    monkeypatch.setattr(extraction, "_backoff_sleep", instant)
    return delays


def make_extractor(outcomes, **overrides):
    settings = Settings(anthropic_api_key="test-key", **overrides)
    extractor = LabelExtractor(settings)
    messages = FakeMessages(outcomes)
    extractor._client = SimpleNamespace(messages=messages)
    return extractor, messages


class TestToolSchema:
    """Test the structured output definition."""

    def test_every_field_required(self):
        """Test the tool asks for every field kind."""
        assert EXTRACT_TOOL["input_schema"]["required"] == [kind.value for kind in FieldKind]

    def test_fields_nullable(self):
        """Test absent fields can be reported as null."""
        for prop in EXTRACT_TOOL["input_schema"]["properties"].values():
            assert prop["type"] == ["string", "null"]


class TestConfiguration:
    """Test API key handling."""

    def test_not_configured_without_key(self):
        assert LabelExtractor(Settings(anthropic_api_key=None)).is_configured is False

    def test_configured_with_key(self):
        assert LabelExtractor(Settings(anthropic_api_key="k")).is_configured is True

    def test_extract_without_key_raises(self):
        """Test a clear error instead of an API call."""
        extractor = LabelExtractor(Settings(anthropic_api_key=None))

        with pytest.raises(ExtractionError, match="ANTHROPIC_API_KEY"):
            asyncio.run(extractor.extract(b"img", "image/png"))


class TestExtract:
    """Test mapping model output to field kinds."""

    def test_fields_mapped(self):
        """Test tool input becomes a FieldKind mapping."""
        extractor, messages = make_extractor([
            tool_response(brand_name="OLD TOM", alcohol_content="45% Alc./Vol.", net_contents="750 mL"),
        ])

        fields = asyncio.run(extractor.extract(b"img", "image/png", "label1.png"))

        assert set(fields) == set(FieldKind)
        assert fields[FieldKind.BRAND_NAME] == "OLD TOM"
        assert fields[FieldKind.ALCOHOL_CONTENT] == "45% Alc./Vol."
        assert fields[FieldKind.GOVERNMENT_WARNING] is None
        assert len(messages.calls) == 1

    def test_blank_values_become_none(self):
        """Test empty and whitespace strings mean not found."""
        extractor, _ = make_extractor([tool_response(brand_name="  ", class_type="", country_of_origin=None)])

        fields = asyncio.run(extractor.extract(b"img", "image/png"))

        assert fields[FieldKind.BRAND_NAME] is None
        assert fields[FieldKind.CLASS_TYPE] is None
        assert fields[FieldKind.COUNTRY_OF_ORIGIN] is None

    def test_text_kept_verbatim(self):
        """Test extracted text is not normalized."""
        extractor, _ = make_extractor([tool_response(brand_name="Old Tom, Distillery.")])

        fields = asyncio.run(extractor.extract(b"img", "image/png"))

        assert fields[FieldKind.BRAND_NAME] == "Old Tom, Distillery."

    def test_request_shape(self):
        """Test the image and forced tool choice are sent."""
        extractor, messages = make_extractor([tool_response()], extraction_model="test-model")

        asyncio.run(extractor.extract(b"img", "image/jpg"))

        call = messages.calls[0]
        assert call["model"] == "test-model"
        assert call["tool_choice"] == {"type": "tool", "name": "extract_label_data"}
        image = call["messages"][0]["content"][0]
        assert image["source"]["media_type"] == "image/jpeg"
        assert image["source"]["data"] == "aW1n"

    def test_missing_tool_block(self):
        """Test a response without tool output is an extraction error."""
        response = SimpleNamespace(content=[SimpleNamespace(type="text", text="I cannot read this")])
        extractor, _ = make_extractor([response])

        with pytest.raises(ExtractionError, match="tool_use"):
            asyncio.run(extractor.extract(b"img", "image/png"))


class TestRetries:
    """Test retry behavior on transient API errors."""

    def test_retries_connection_error(self):
        """Test a dropped connection is retried."""
        extractor, messages = make_extractor([
            anthropic.APIConnectionError(request=REQUEST),
            tool_response(brand_name="OLD TOM"),
        ])

        fields = asyncio.run(extractor.extract(b"img", "image/png"))

        assert fields[FieldKind.BRAND_NAME] == "OLD TOM"
        assert len(messages.calls) == 2

    def test_retries_server_error(self):
        """Test 5xx responses are retried."""
        server_error = anthropic.InternalServerError(
            "overloaded", response=httpx.Response(500, request=REQUEST), body=None
        )
        extractor, messages = make_extractor([server_error, tool_response()])

        asyncio.run(extractor.extract(b"img", "image/png"))

        assert len(messages.calls) == 2

    def test_client_error_not_retried(self):
        """Test 4xx responses fail immediately."""
        bad_request = anthropic.BadRequestError(
            "bad image", response=httpx.Response(400, request=REQUEST), body=None
        )
        extractor, messages = make_extractor([bad_request, tool_response()])

        with pytest.raises(ExtractionError, match="400"):
            asyncio.run(extractor.extract(b"img", "image/png"))
        assert len(messages.calls) == 1

    def test_gives_up_after_max_retries(self):
        """Test repeated failures surface as an extraction error."""
        errors = [anthropic.APIConnectionError(request=REQUEST) for _ in range(2)]
        extractor, messages = make_extractor(errors, extraction_max_retries=2)

        with pytest.raises(ExtractionError, match="unreachable"):
            asyncio.run(extractor.extract(b"img", "image/png"))
        assert len(messages.calls) == 2

    def test_backoff_local_to_extraction(self, backoff_delays):
        """Test retry delays go through the extraction hook, leaving asyncio.sleep alone."""
        extractor, _ = make_extractor([
            anthropic.APIConnectionError(request=REQUEST),
            tool_response(),
        ])

        asyncio.run(extractor.extract(b"img", "image/png"))

        assert len(backoff_delays) == 1
        assert backoff_delays[0] >= 1
        assert extraction._backoff_sleep is not asyncio.sleep
        assert asyncio.sleep.__module__ == "asyncio.tasks"
