"""
Module: test_settings.py
Description: Unit tests for Settings defaults and validation.
"""

import pytest
from pydantic import ValidationError

from eventrelay.config.settings import Settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        """Test the default configuration surface."""
        for name in ("MAX_RETRIES", "RETRY_WORKERS", "POLL_INTERVAL", "DESTINATIONS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.max_retries == 5
        assert settings.retry_workers == 5
        assert settings.poll_interval == 5.0
        assert settings.error_backoff == 5.0
        assert settings.backoff_base == 2
        assert settings.delivery_timeout is None
        assert settings.destinations == ["flaky", "slow", "logging"]
        assert settings.queue_key == "events"
        assert settings.schedule_key == "retry_events"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES", "3")
        monkeypatch.setenv("RETRY_WORKERS", "8")
        monkeypatch.setenv("DESTINATIONS", '["logging"]')
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.max_retries == 3
        assert settings.retry_workers == 8
        assert settings.destinations == ["logging"]
        assert settings.log_level == "DEBUG"

    def test_comma_separated_lists(self, monkeypatch):
        """Test list settings accept plain comma-separated environment values."""
        monkeypatch.setenv("DESTINATIONS", "logging, flaky")
        monkeypatch.setenv("WEBHOOK_URLS", "https://a.example.com/hook,https://b.example.com/hook")

        settings = Settings(_env_file=None)

        assert settings.destinations == ["logging", "flaky"]
        assert settings.webhook_urls == [
            "https://a.example.com/hook",
            "https://b.example.com/hook",
        ]

    def test_json_list_still_accepted(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_URLS", '["https://a.example.com/hook"]')

        settings = Settings(_env_file=None)

        assert settings.webhook_urls == ["https://a.example.com/hook"]

    def test_invalid_values(self):
        invalid = [
            {"log_level": "LOUD"},
            {"destinations": ["carrier-pigeon"]},
            {"webhook_urls": ["ftp://example.com"]},
            {"escalation_channel": "pager"},
            {"retry_workers": 0},
            {"max_retries": 0},
            {"queue_key": "  "},
        ]
        for overrides in invalid:
            with pytest.raises(ValidationError):
                Settings(_env_file=None, **overrides)
