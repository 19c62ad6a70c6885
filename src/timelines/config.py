"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class BlueskyConfig:
    """Credentials and endpoint for the Bluesky author feed."""

    handle: str
    app_password: str
    service_url: str = "https://bsky.social"
    page_size: int = 100


@dataclass(frozen=True)
class LastfmConfig:
    """Credentials and endpoint for Last.fm recent tracks."""

    user: str
    api_key: str
    api_url: str = "https://ws.audioscrobbler.com/2.0/"
    page_size: int = 200
    cache_dir: str = ".cache/lastfm"


@dataclass(frozen=True)
class TwitterConfig:
    """Twitter timeline credentials, or archive files for offline import."""

    consumer_key: str | None = None
    consumer_secret: str | None = None
    screen_name: str | None = None
    api_url: str = "https://api.twitter.com"
    page_size: int = 200
    archive_files: tuple[str, ...] = ()
    include_retweets: bool = False


@dataclass(frozen=True)
class Config:
    """Application configuration. All values sourced from environment variables.

    Only the section for the source being synced is populated.
    """

    # Optional — Sources
    bluesky: BlueskyConfig | None = None
    lastfm: LastfmConfig | None = None
    twitter: TwitterConfig | None = None

    # Optional — Sync
    page_delay_seconds: float = 1.0
    http_timeout_seconds: float = 30.0

    # Optional — Application
    log_level: str = "INFO"
    log_format: str = "text"


_REQUIRED_VARS = {
    "bluesky": ["BLUESKY_HANDLE", "BLUESKY_APP_PASSWORD"],
    "lastfm": ["LASTFM_USER", "LASTFM_API_KEY"],
    "twitter": ["TWITTER_CONSUMER_KEY", "TWITTER_CONSUMER_SECRET", "TWITTER_SCREEN_NAME"],
    "twitter-archive": [],
}


def _split_paths(value: str) -> tuple[str, ...]:
    return tuple(part for part in value.split(os.pathsep) if part.strip())


def load_config(source: str, env_path: str | Path | None = None) -> Config:
    """Load configuration for one source from environment variables.

    Loads a .env file if present (for local development), then validates
    that all variables required by ``source`` are set. Raises ValueError
    listing any missing variables, or naming an unknown source.
    """
    load_dotenv(dotenv_path=env_path)

    if source not in _REQUIRED_VARS:
        raise ValueError(
            f"Unknown source '{source}'; must be one of: {', '.join(sorted(_REQUIRED_VARS))}"
        )

    missing = [var for var in _REQUIRED_VARS[source] if not os.environ.get(var)]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    bluesky = lastfm = twitter = None
    if source == "bluesky":
        bluesky = BlueskyConfig(
            handle=os.environ["BLUESKY_HANDLE"],
            app_password=os.environ["BLUESKY_APP_PASSWORD"],
            service_url=os.environ.get("BLUESKY_SERVICE_URL", "https://bsky.social"),
        )
    elif source == "lastfm":
        lastfm = LastfmConfig(
            user=os.environ["LASTFM_USER"],
            api_key=os.environ["LASTFM_API_KEY"],
            cache_dir=os.environ.get("LASTFM_CACHE_DIR", ".cache/lastfm"),
        )
    else:
        twitter = TwitterConfig(
            consumer_key=os.environ.get("TWITTER_CONSUMER_KEY"),
            consumer_secret=os.environ.get("TWITTER_CONSUMER_SECRET"),
            screen_name=os.environ.get("TWITTER_SCREEN_NAME"),
            archive_files=_split_paths(os.environ.get("TWITTER_ARCHIVE_FILES", "")),
        )

    return Config(
        bluesky=bluesky,
        lastfm=lastfm,
        twitter=twitter,
        # Optional — Sync
        page_delay_seconds=float(os.environ.get("PAGE_DELAY_SECONDS", "1.0")),
        http_timeout_seconds=float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30")),
        # Optional — Application
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "text"),
    )
