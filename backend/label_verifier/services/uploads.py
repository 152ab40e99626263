"""Validation of uploaded label images before they are sent for extraction."""

import base64
import binascii
import io
import re
from typing import Optional, Tuple
import logging

from PIL import Image, UnidentifiedImageError

from ..config import get_settings

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]+);base64,(?P<data>.+)$", re.DOTALL)

_FORMAT_MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}


def decode_data_url(data_url: str) -> Tuple[bytes, str]:
    """
    Split a data URL into raw bytes and MIME type.

    Raises:
        ValueError: if the string is not a base64 data URL
    """
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise ValueError("Invalid data URL format")

    try:
        image_bytes = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e

    return image_bytes, match.group("mime").lower()


def mime_type_for_filename(filename: str) -> str:
    """Guess an image MIME type from a file extension."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext in ("jpg", "jpeg"):
        return "image/jpeg"
    return f"image/{ext}" if ext else "application/octet-stream"


def validate_image(image_bytes: bytes, mime_type: str) -> Tuple[bool, str]:
    """
    Validate image meets requirements for extraction.

    Returns:
        Tuple of (is_valid, error_message)
    """
    settings = get_settings()

    if mime_type not in settings.allowed_mime_types:
        return False, "Invalid file type. Allowed formats: JPEG, PNG, WEBP"

    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > settings.max_upload_size_mb:
        return False, f"Image exceeds {settings.max_upload_size_mb:g}MB upload limit. Please resize or compress."

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            image_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.warning(f"Rejected unreadable image: {e}")
        return False, "Unable to read image. Please upload a valid label image."

    if image_format not in _FORMAT_MIME_TYPES:
        return False, "Invalid file type. Allowed formats: JPEG, PNG, WEBP"

    return True, ""


def detect_mime_type(image_bytes: bytes) -> Optional[str]:
    """
    MIME type of the image format Pillow reads from the bytes themselves.

    Returns None for unreadable or unsupported images.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return _FORMAT_MIME_TYPES.get(img.format)
    except (UnidentifiedImageError, OSError):
        return None
