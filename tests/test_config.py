"""Tests for Settings validation."""

import pytest

from mascotgen.core.config import Settings


def test_test_environment_skips_credential_check(monkeypatch):
    monkeypatch.delenv("SLACK_BOT_TOKEN", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.app_env == "test"
    assert settings.port == 3000
    assert settings.max_concurrent_jobs == 20
    assert settings.seen_events_capacity == 100


def test_missing_credentials_fail_fast(monkeypatch):
    """Test that production startup lists every missing variable."""
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.delenv("SLACK_BOT_TOKEN", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    with pytest.raises(ValueError) as exc_info:
        Settings(_env_file=None)  # type: ignore[call-arg]

    message = str(exc_info.value)
    assert "SLACK_BOT_TOKEN" in message
    assert "GEMINI_API_KEY" in message


def test_env_aliases(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-1")
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    monkeypatch.setenv("MAX_CONCURRENT_JOBS", "5")
    monkeypatch.setenv("MENTION_PERSONA", "ian")

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.max_concurrent_jobs == 5
    assert settings.mention_persona == "ian"
