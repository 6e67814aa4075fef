"""
Tests for configuration validation
"""
import pytest
from pydantic import ValidationError
from app.core.config import Settings


def test_prod_settings_rejects_wildcard_origins():
    settings = Settings(
        DATABASE_URL="postgresql://test",
        APP_ENV="prod",
        ALLOWED_ORIGINS="*"
    )
    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        settings.validate_production()


def test_prod_settings_rejects_sqlite():
    settings = Settings(
        DATABASE_URL="sqlite:///./prod.db",
        APP_ENV="prod",
        ALLOWED_ORIGINS="https://hr.example.com"
    )
    with pytest.raises(ValueError, match="SQLite"):
        settings.validate_production()


def test_local_settings_allows_wildcard_origins():
    settings = Settings(APP_ENV="local", ALLOWED_ORIGINS="*")
    settings.validate_production()
    assert settings.get_allowed_origins_list() == ["*"]


def test_allowed_origins_are_split():
    settings = Settings(ALLOWED_ORIGINS="https://a.example.com, https://b.example.com,")
    assert settings.get_allowed_origins_list() == ["https://a.example.com", "https://b.example.com"]


def test_invalid_app_env_rejected():
    with pytest.raises(ValidationError):
        Settings(APP_ENV="production")


def test_negative_threshold_rejected():
    with pytest.raises(ValidationError):
        Settings(DOUBLE_PUNCH_MINUTES=-1)


def test_reconciliation_defaults():
    settings = Settings()
    assert settings.DEFAULT_GRACE_PERIOD_MINUTES == 15
    assert settings.DOUBLE_PUNCH_MINUTES == 10
    assert settings.MAX_SHIFT_DURATION_MINUTES == 1200
    assert settings.LOG_LEVEL == "INFO"
