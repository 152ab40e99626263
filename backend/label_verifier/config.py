"""Application configuration."""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Label Verification API"
    debug: bool = False

    # CORS - Allow all origins for prototype (restrict in production)
    cors_origins: list[str] = ["*"]

    # Upload limits
    max_upload_size_mb: float = 10.0
    allowed_mime_types: set[str] = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

    # Extraction service (Anthropic vision model)
    anthropic_api_key: Optional[str] = None
    extraction_model: str = "claude-haiku-4-5"
    extraction_max_tokens: int = 1024
    extraction_timeout_seconds: float = 30.0
    extraction_max_retries: int = 3

    # Batch processing
    max_batch_size: int = 50
    max_concurrent_extractions: int = 4  # Bounded by the extraction API rate limit, not CPU

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
