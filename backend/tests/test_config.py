"""
Tests for centralized configuration.
"""
import pytest
from pydantic import ValidationError
from app.core import config
from app.core.config import Settings, get_settings, reload_settings


@pytest.mark.unit
def test_settings_defaults(monkeypatch):
    """Test that settings have sensible defaults."""
    for name in ("MAX_FILE_SIZE_MB", "RATE_LIMIT_PER_MINUTE", "DATASET_CACHE_TTL_SECONDS", "AI_SAMPLE_ROWS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()

    assert settings.max_file_size_mb == 50
    assert settings.max_dataset_rows == 5000
    assert settings.rate_limit_per_minute == 10
    assert settings.request_timeout_seconds == 300
    assert settings.log_level == "INFO"
    assert settings.dataset_cache_ttl_seconds == 1800
    assert settings.ai_sample_rows == 20


@pytest.mark.unit
def test_settings_from_env(monkeypatch):
    """Test loading settings from environment variables."""
    monkeypatch.setattr(config, "_settings", None)
    monkeypatch.setenv("MAX_FILE_SIZE_MB", "100")
    monkeypatch.setenv("DATASET_CACHE_TTL_SECONDS", "600")
    monkeypatch.setenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = reload_settings()
    assert settings.max_file_size_mb == 100
    assert settings.dataset_cache_ttl_seconds == 600
    assert settings.groq_model == "llama-3.3-70b-versatile"
    assert settings.log_level == "DEBUG"


@pytest.mark.unit
def test_settings_validation():
    """Test that settings validate input ranges."""
    with pytest.raises(ValidationError):
        Settings(max_file_size_mb=0)

    with pytest.raises(ValidationError):
        Settings(dataset_cache_ttl_seconds=5)

    with pytest.raises(ValidationError):
        Settings(log_level="INVALID")


@pytest.mark.unit
def test_settings_properties():
    """Test computed properties."""
    settings = Settings(max_file_size_mb=50, allowed_origins="https://a.example, ,https://b.example")

    assert settings.max_file_size_bytes == 50 * 1024 * 1024
    assert settings.allowed_origins_list == ["https://a.example", "https://b.example"]


@pytest.mark.unit
def test_settings_singleton():
    """Test that get_settings returns singleton."""
    assert get_settings() is get_settings()


@pytest.mark.unit
def test_from_env_rejects_out_of_range(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "0")
    with pytest.raises(ValidationError):
        Settings.from_env()


@pytest.mark.unit
def test_from_env_reads_every_field(monkeypatch):
    monkeypatch.setenv("AI_SAMPLE_ROWS", "5")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-2.0-flash")
    monkeypatch.setenv("MAX_CELL_SIZE_BYTES", "2000")
    settings = Settings.from_env()
    assert settings.ai_sample_rows == 5
    assert settings.gemini_model == "gemini-2.0-flash"
    assert settings.max_cell_size_bytes == 2000
