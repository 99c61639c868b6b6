# tests/test_settings.py
"""Tests for environment-driven configuration."""

from forum_votes.core.settings import Settings


def test_defaults() -> None:
    settings = Settings()
    assert settings.vote_max_retries >= 1
    assert settings.vote_lock_timeout_seconds > 0
    assert settings.effective_database_url == settings.database_url


def test_environment_aliases(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://forum@db/forum")
    monkeypatch.setenv("VOTE_LOCK_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("VOTE_MAX_RETRIES", "5")

    settings = Settings()

    assert settings.vote_lock_timeout_seconds == 2.5
    assert settings.vote_max_retries == 5
    assert settings.database_url_sync == "postgresql+psycopg://forum@db/forum"


def test_testing_database_override(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./prod.db")
    monkeypatch.setenv("TEST_DATABASE_URL", "sqlite:///./test.db")
    monkeypatch.setenv("USE_TEST_DATABASE", "true")

    assert Settings().effective_database_url == "sqlite:///./test.db"
