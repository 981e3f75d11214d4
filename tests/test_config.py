"""tests/test_config.py -- Settings validation and derived values."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings

GOOD_SECRET = "k" * 32


def _settings(**overrides) -> Settings:
    values = {"database_url": "sqlite:///crudadmin.db", "session_secret": GOOD_SECRET}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_defaults() -> None:
    settings = _settings(app_env="development")
    assert settings.session_max_age == 7 * 24 * 60 * 60
    assert settings.auth_rate_limit == 5
    assert settings.auth_rate_window_seconds == 60
    assert settings.session_cookie_name == "_session"
    assert settings.secure_cookies is False


def test_production_cookie_settings() -> None:
    settings = _settings(app_env="production")
    assert settings.is_production
    assert settings.session_cookie_name == "__Host-session"
    assert settings.secure_cookies is True


def test_short_secret_rejected() -> None:
    with pytest.raises(ValidationError, match="SESSION_SECRET must be at least 32 characters"):
        _settings(session_secret="too-short")


def test_missing_database_url_rejected(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, session_secret=GOOD_SECRET)


def test_unknown_app_env_rejected() -> None:
    with pytest.raises(ValidationError):
        _settings(app_env="staging")


def test_in_memory_database_rejected_in_production() -> None:
    with pytest.raises(ValidationError, match="in-memory"):
        _settings(app_env="production", database_url="sqlite:///:memory:")


def test_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("AUTH_RATE_LIMIT", "9")
    assert _settings().auth_rate_limit == 9
