"""Tests for settings loading and logging configuration."""

from __future__ import annotations

import json
import logging

import pytest

from throttle.config import Settings, get_settings
from throttle.logging_config import JSONFormatter, configure_logging, is_production


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("THROTTLE_RATE_LIMIT_AUTH_SEND", raising=False)
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.rate_limit_enabled is True
        assert settings.rate_limit_window_seconds == 60
        assert settings.rate_limit_auth_send == 3
        assert settings.rate_limit_create_event == 5
        assert settings.rate_limit_sweep_interval_seconds == 60.0

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THROTTLE_RATE_LIMIT_AUTH_SEND", "7")
        monkeypatch.setenv("THROTTLE_RATE_LIMIT_ENABLED", "false")
        monkeypatch.setenv("THROTTLE_CORS_ORIGINS", '["https://example.org"]')
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.rate_limit_auth_send == 7
        assert settings.rate_limit_enabled is False
        assert settings.cors_origins == ["https://example.org"]

    def test_get_settings_is_cached(self) -> None:
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()


class TestLogging:
    @pytest.mark.parametrize("env", ["production", "PROD", "staging"])
    def test_production_envs(self, monkeypatch: pytest.MonkeyPatch, env: str) -> None:
        monkeypatch.setenv("THROTTLE_ENV", env)
        assert is_production() is True

    def test_development_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("THROTTLE_ENV", raising=False)
        assert is_production() is False

    def test_json_formatter_includes_extras(self) -> None:
        record = logging.LogRecord(
            name="throttle.middleware.rate_limit",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Rate limit exceeded for %s",
            args=("location",),
            exc_info=None,
        )
        record.operation = "location"
        record.client_ip = "203.0.113.7"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Rate limit exceeded for location"
        assert data["level"] == "INFO"
        assert data["operation"] == "location"
        assert data["client_ip"] == "203.0.113.7"
        assert "path" not in data

    def test_configure_logging_uses_json_in_production(self, monkeypatch: pytest.MonkeyPatch) -> None:
        root = logging.getLogger()
        saved = root.handlers[:]
        monkeypatch.setenv("THROTTLE_ENV", "production")
        try:
            configure_logging()
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            root.handlers[:] = saved
