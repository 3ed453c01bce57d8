"""Tests for startup configuration validation."""

import logging

from habitflow.core.config import Settings
from habitflow.core.config_validator import log_config_summary, validate_config


def _settings(**overrides):
    base = dict(
        database_url="sqlite+aiosqlite:///:memory:",
        store_api_key="",
        environment="development",
    )
    base.update(overrides)
    return Settings(**base)


class TestValidateConfig:
    def test_defaults_are_valid(self):
        assert validate_config(_settings()) == []

    def test_missing_database_url(self):
        errors = validate_config(_settings(database_url=""))
        assert any("DATABASE_URL is required" in e for e in errors)

    def test_malformed_database_url(self):
        errors = validate_config(_settings(database_url="habits.db"))
        assert any("format is invalid" in e for e in errors)

    def test_production_needs_api_key(self):
        errors = validate_config(_settings(environment="production"))
        assert errors == ["STORE_API_KEY is required in production"]
        assert validate_config(_settings(environment="production", store_api_key="k")) == []

    def test_ranges(self):
        errors = validate_config(
            _settings(session_ttl_hours=0, analytics_default_range=14)
        )
        assert len(errors) == 2


def test_summary_redacts_secrets(caplog):
    with caplog.at_level(logging.INFO, logger="habitflow.core.config_validator"):
        log_config_summary(_settings(store_api_key="supersecret"))
    assert "supe***" in caplog.text
    assert "supersecret" not in caplog.text
    assert "database=sqlite" in caplog.text
