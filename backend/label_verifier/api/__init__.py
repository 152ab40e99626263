"""API routes."""

from .routes import router, get_label_extractor

__all__ = ["router", "get_label_extractor"]
