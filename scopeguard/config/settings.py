"""Application settings using Pydantic."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SCOPEGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Extraction
    extraction_max_workers: int = 4
    ambiguity_penalty: float = 0.15
    min_confidence: float = 0.1

    # Cross-referencing
    location_match_threshold: float = 85.0

    # Baseline Store access
    baseline_max_attempts: int = 3
    baseline_retry_min_seconds: float = 0.5
    baseline_retry_max_seconds: float = 8.0

    # Ingestion
    max_concurrent_documents: int = 2

    # External configuration files
    tables_path: Optional[Path] = None
    baseline_path: Optional[Path] = None

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
