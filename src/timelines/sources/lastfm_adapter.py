"""Last.fm source adapter — pages through user.getRecentTracks by page number."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from timelines.config import Config, LastfmConfig
from timelines.errors import DecodeError, FetchError
from timelines.records import Track
from timelines.sources.adapter import PageSource

logger = logging.getLogger(__name__)


def is_now_playing(track: dict) -> bool:
    """The currently playing track has no date and is not a scrobble yet."""
    attr = track.get("@attr") or {}
    return attr.get("nowplaying") == "true" or "date" not in track


class LastfmSource(PageSource):
    """Adapter for a Last.fm user's scrobbles (newest first, page-number paged)."""

    def __init__(self, config: LastfmConfig, timeout: float = 30.0) -> None:
        self._config = config
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: Config) -> LastfmSource:
        if config.lastfm is None:
            raise ValueError("Last.fm configuration is missing")
        return cls(config.lastfm, timeout=config.http_timeout_seconds)

    @property
    def name(self) -> str:
        return "lastfm"

    @property
    def collection(self) -> str:
        return "tracks"

    @property
    def record_type(self) -> type:
        return Track

    def fetch_page(self, cursor: int | None) -> tuple[list[dict], int | None]:
        page = cursor if cursor is not None else 1
        try:
            resp = httpx.get(
                self._config.api_url,
                params={
                    "method": "user.getrecenttracks",
                    "user": self._config.user,
                    "api_key": self._config.api_key,
                    "format": "json",
                    "limit": self._config.page_size,
                    "page": page,
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
            if "error" in data:
                raise FetchError(
                    f"Last.fm error {data['error']}: {data.get('message', 'unknown')}"
                )
            recent = data["recenttracks"]
            tracks = recent["track"]
            total_pages = int(recent["@attr"]["totalPages"])
            # A user with a single scrobble gets an object instead of a list.
            if isinstance(tracks, dict):
                tracks = [tracks]
            items = [track for track in tracks if not is_now_playing(track)]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise FetchError(f"Failed to fetch Last.fm page {page}: {exc}") from exc

        logger.info("Fetched Last.fm page %d of %d", page, total_pages)
        next_page = page + 1 if page < total_pages else None
        return items, next_page

    def to_record(self, raw: dict) -> Track:
        try:
            return Track(
                name=raw["name"],
                artist=(raw.get("artist") or {}).get("#text", ""),
                album=(raw.get("album") or {}).get("#text", ""),
                listened_at=datetime.fromtimestamp(int(raw["date"]["uts"]), tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as exc:
            raise DecodeError(f"Invalid Last.fm track: {exc!r}") from exc
