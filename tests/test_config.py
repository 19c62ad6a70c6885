"""Tests for timelines.config."""

import os

import pytest

from timelines.config import load_config

_ENV_PREFIXES = ("BLUESKY_", "LASTFM_", "TWITTER_")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove all config-related env vars before each test."""
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    for key in ("PAGE_DELAY_SECONDS", "HTTP_TIMEOUT_SECONDS", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(key, raising=False)
    # Prevent .env file from re-setting variables during tests
    monkeypatch.setattr("timelines.config.load_dotenv", lambda *a, **kw: None)


def test_unknown_source_raises():
    with pytest.raises(ValueError, match="Unknown source 'myspace'"):
        load_config("myspace")


def test_missing_bluesky_vars_lists_all():
    with pytest.raises(ValueError, match="Missing required environment variables") as exc_info:
        load_config("bluesky")
    msg = str(exc_info.value)
    assert "BLUESKY_HANDLE" in msg
    assert "BLUESKY_APP_PASSWORD" in msg


def test_bluesky_config_with_defaults(monkeypatch):
    monkeypatch.setenv("BLUESKY_HANDLE", "me.bsky.social")
    monkeypatch.setenv("BLUESKY_APP_PASSWORD", "xxxx-xxxx")

    config = load_config("bluesky")

    assert config.bluesky.handle == "me.bsky.social"
    assert config.bluesky.app_password == "xxxx-xxxx"
    assert config.bluesky.service_url == "https://bsky.social"
    assert config.lastfm is None
    assert config.twitter is None
    assert config.page_delay_seconds == 1.0
    assert config.http_timeout_seconds == 30.0
    assert config.log_level == "INFO"
    assert config.log_format == "text"


def test_lastfm_config(monkeypatch):
    monkeypatch.setenv("LASTFM_USER", "me")
    monkeypatch.setenv("LASTFM_API_KEY", "abc123")
    monkeypatch.setenv("LASTFM_CACHE_DIR", "/tmp/lastfm-cache")

    config = load_config("lastfm")

    assert config.lastfm.user == "me"
    assert config.lastfm.api_key == "abc123"
    assert config.lastfm.cache_dir == "/tmp/lastfm-cache"
    assert config.lastfm.page_size == 200


def test_missing_lastfm_subset(monkeypatch):
    monkeypatch.setenv("LASTFM_USER", "me")
    with pytest.raises(ValueError, match="LASTFM_API_KEY") as exc_info:
        load_config("lastfm")
    assert "LASTFM_USER" not in str(exc_info.value)


def test_twitter_api_requires_credentials_and_screen_name():
    with pytest.raises(ValueError) as exc_info:
        load_config("twitter")
    msg = str(exc_info.value)
    assert "TWITTER_CONSUMER_KEY" in msg
    assert "TWITTER_CONSUMER_SECRET" in msg
    assert "TWITTER_SCREEN_NAME" in msg


def test_twitter_archive_needs_no_credentials(monkeypatch):
    monkeypatch.setenv("TWITTER_ARCHIVE_FILES", os.pathsep.join(["a/tweets.js", "b/tweets-part1.js"]))

    config = load_config("twitter-archive")

    assert config.twitter.archive_files == ("a/tweets.js", "b/tweets-part1.js")
    assert config.twitter.consumer_key is None


def test_sync_and_logging_overrides(monkeypatch):
    monkeypatch.setenv("LASTFM_USER", "me")
    monkeypatch.setenv("LASTFM_API_KEY", "abc123")
    monkeypatch.setenv("PAGE_DELAY_SECONDS", "0")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "5.5")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LOG_FORMAT", "json")

    config = load_config("lastfm")

    assert config.page_delay_seconds == 0.0
    assert config.http_timeout_seconds == 5.5
    assert config.log_level == "DEBUG"
    assert config.log_format == "json"


def test_config_is_frozen(monkeypatch):
    monkeypatch.setenv("LASTFM_USER", "me")
    monkeypatch.setenv("LASTFM_API_KEY", "abc123")
    config = load_config("lastfm")
    with pytest.raises(AttributeError):
        config.log_level = "DEBUG"
