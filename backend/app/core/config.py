"""
Service settings, read once from the environment (and a .env file loaded in
main.py). Every setting's environment variable is its field name upper-cased,
e.g. DATASET_CACHE_TTL_SECONDS.
"""
import os
import logging
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Limits and integrations of the statistics service."""

    # Uploads
    max_file_size_mb: int = Field(default=50, ge=1, le=1000, description="Largest CSV accepted, in MB")
    max_file_rows: int = Field(default=1000000, ge=1000, description="Parsed rows allowed per CSV")
    max_file_columns: int = Field(default=1000, ge=10, description="Header fields allowed per CSV")
    max_cell_size_bytes: int = Field(default=100000, ge=1000, description="Longest text cell allowed")
    max_dataset_rows: int = Field(default=5000, ge=100, le=100000, description="Rows echoed back by /upload")

    # Dataset sessions
    dataset_cache_ttl_seconds: int = Field(default=1800, ge=60, le=86400, description="How long an upload stays queryable")

    # Request handling
    rate_limit_per_minute: int = Field(default=10, ge=1, le=1000, description="Upload and analysis calls per client IP")
    request_timeout_seconds: int = Field(default=300, ge=1, le=3600, description="Answer 504 after this long")
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated CORS origins of the dashboard"
    )
    log_level: str = Field(default="INFO", description="Root logger level")

    # Narrative model
    ai_sample_rows: int = Field(default=20, ge=1, le=200, description="Rows quoted to the model")
    groq_model: str = Field(default="llama-3.1-8b-instant", description="Primary (Groq) model")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Fallback (Gemini) model")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {list(LOG_LEVELS)}, got '{v}'")
        return v.upper()

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the environment. Unset variables keep their
        defaults; set ones are coerced and range-checked by pydantic.
        """
        overrides = {
            name: os.environ[name.upper()]
            for name in cls.model_fields
            if name.upper() in os.environ
        }
        return cls(**overrides)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
        logger.info("Configuration loaded and validated successfully")
    return _settings


def reload_settings() -> Settings:
    """Drop the cached settings and read the environment again."""
    global _settings
    _settings = None
    return get_settings()
