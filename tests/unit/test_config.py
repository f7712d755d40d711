"""Unit tests for configuration validation"""
import pytest

from tracklog import config
from tracklog.exceptions import ConfigurationError


def test_valid_config_passes(monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", "postgresql://localhost/tracklog")
    monkeypatch.setattr(config, "DB_POOL_MIN_SIZE", 2)
    monkeypatch.setattr(config, "DB_POOL_MAX_SIZE", 10)
    monkeypatch.setattr(config, "ENABLE_SENTRY", False)
    config.validate_config()


def test_missing_database_url(monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", "")

    with pytest.raises(ConfigurationError) as exc_info:
        config.validate_config()
    assert exc_info.value.config_key == "DATABASE_URL"


def test_pool_sizes_must_be_ordered(monkeypatch):
    monkeypatch.setattr(config, "DB_POOL_MIN_SIZE", 20)
    monkeypatch.setattr(config, "DB_POOL_MAX_SIZE", 5)

    with pytest.raises(ConfigurationError) as exc_info:
        config.validate_config()
    assert exc_info.value.config_key == "DB_POOL_MIN_SIZE"


def test_sentry_needs_dsn(monkeypatch):
    monkeypatch.setattr(config, "ENABLE_SENTRY", True)
    monkeypatch.setattr(config, "SENTRY_DSN", "")

    with pytest.raises(ConfigurationError) as exc_info:
        config.validate_config()
    assert exc_info.value.context["config_key"] == "SENTRY_DSN"
    assert "not properly configured" in exc_info.value.user_message
