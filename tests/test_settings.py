"""
Tests for settings that feed the session store and the ledger.
"""

import pytest
from pydantic import ValidationError

from bookstore.settings import Environment, Settings


@pytest.mark.unit
class TestSessionSettings:
    def test_default_lifetime_is_one_day(self):
        assert Settings().session.ttl == 86400

    def test_duration_from_environment(self, monkeypatch):
        monkeypatch.setenv("SESSION__DURATION", "2 hours")
        assert Settings().session.ttl == 7200

    def test_invalid_duration_is_rejected(self, monkeypatch):
        monkeypatch.setenv("SESSION__DURATION", "forever")
        with pytest.raises(ValidationError):
            Settings()


@pytest.mark.unit
class TestSettingsDefaults:
    def test_billing_period(self):
        assert Settings().subscription.billing_period_days == 30

    def test_environment_is_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "PRODUCTION")
        settings = Settings()
        assert settings.environment == Environment.PRODUCTION
        assert settings.is_production

    def test_development_without_password_uses_sqlite(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "development")
        monkeypatch.delenv("DATABASE__PASSWORD", raising=False)
        monkeypatch.delenv("DATABASE__URL", raising=False)
        assert Settings().database_url.startswith("sqlite+aiosqlite://")

    def test_redis_session_url_from_parts(self, monkeypatch):
        monkeypatch.delenv("REDIS__URL", raising=False)
        monkeypatch.delenv("REDIS__PASSWORD", raising=False)
        monkeypatch.setenv("REDIS__HOST", "cache")
        monkeypatch.setenv("REDIS__SESSION_DB", "3")
        assert Settings().redis.session_url == "redis://cache:6379/3"
