"""Twitter source adapter — pages back through a user timeline with max_id."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from timelines.config import Config, TwitterConfig
from timelines.errors import DecodeError, FetchError
from timelines.records import (
    MediaType,
    Tweet,
    TweetEntities,
    TweetMediaEntity,
    TweetReply,
    TweetUrlEntity,
)
from timelines.sources.adapter import PageSource

logger = logging.getLogger(__name__)

# Fri Sep 28 22:03:55 +0000 2018
TWEET_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"


def parse_tweet_date(value: str) -> datetime:
    return datetime.strptime(value, TWEET_DATE_FORMAT).astimezone(timezone.utc)


def _id_field(raw: dict, key: str) -> int | None:
    """Read a numeric ID, preferring the exact ``<key>_str`` variant."""
    value = raw.get(f"{key}_str") or raw.get(key)
    return int(value) if value is not None else None


def _required_id(raw: dict, key: str) -> int:
    value = _id_field(raw, key)
    if value is None:
        raise KeyError(key)
    return value


def _entities_from_raw(raw: dict) -> TweetEntities | None:
    entities = raw.get("entities") or {}
    urls = tuple(
        TweetUrlEntity(
            display_url=url["display_url"],
            url=url["url"],
            expanded_url=url.get("expanded_url"),
        )
        for url in entities.get("urls") or []
        # Some archived URL entities only carry "url"; they are dropped.
        if url.get("display_url") and url.get("url")
    )
    media_source = (raw.get("extended_entities") or {}).get("media") or entities.get("media") or []
    media = tuple(
        TweetMediaEntity(
            id=_required_id(item, "id"),
            type=MediaType(item["type"]),
            url=item["media_url_https"],
        )
        for item in media_source
    )
    result = TweetEntities(urls=urls, media=media)
    return None if result.is_empty() else result


def tweet_from_raw(raw: dict) -> Tweet:
    """Convert a timeline or archive tweet object into a canonical Tweet."""
    try:
        status_id = _id_field(raw, "in_reply_to_status_id")
        user_id = _id_field(raw, "in_reply_to_user_id")
        user_name = raw.get("in_reply_to_screen_name")
        reply = None
        if status_id is not None and user_id is not None and user_name:
            reply = TweetReply(status_id=status_id, user_id=user_id, user_name=user_name)

        text = raw.get("full_text")
        if text is None:
            text = raw["text"]

        return Tweet(
            id=_required_id(raw, "id"),
            created_at=parse_tweet_date(raw["created_at"]),
            text=text,
            entities=_entities_from_raw(raw),
            in_reply_to=reply,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DecodeError(f"Invalid tweet: {exc!r}") from exc


class TwitterTimelineSource(PageSource):
    """Adapter for a user's Twitter timeline (newest first, max_id paged)."""

    def __init__(self, config: TwitterConfig, timeout: float = 30.0) -> None:
        if not (config.consumer_key and config.consumer_secret and config.screen_name):
            raise ValueError(
                "Twitter timeline sync needs a consumer key, consumer secret and screen name"
            )
        self._config = config
        self._timeout = timeout
        self._bearer_token: str | None = None

    @classmethod
    def from_config(cls, config: Config) -> TwitterTimelineSource:
        if config.twitter is None:
            raise ValueError("Twitter configuration is missing")
        return cls(config.twitter, timeout=config.http_timeout_seconds)

    @property
    def name(self) -> str:
        return "twitter"

    @property
    def collection(self) -> str:
        return "tweets"

    @property
    def record_type(self) -> type:
        return Tweet

    def _authenticate(self) -> None:
        """Exchange the consumer key pair for an app-only bearer token."""
        try:
            resp = httpx.post(
                self._config.api_url + "/oauth2/token",
                auth=(self._config.consumer_key, self._config.consumer_secret),
                data={"grant_type": "client_credentials"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            self._bearer_token = resp.json()["access_token"]
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            raise FetchError(f"Twitter authentication failed: {exc}") from exc

    def fetch_page(self, cursor: int | None) -> tuple[list[dict], int | None]:
        if self._bearer_token is None:
            self._authenticate()

        params: dict[str, str | int] = {
            "screen_name": self._config.screen_name,
            "count": self._config.page_size,
            "tweet_mode": "extended",
            "exclude_replies": "false",
            "include_rts": "true" if self._config.include_retweets else "false",
        }
        if cursor is not None:
            params["max_id"] = cursor

        try:
            resp = httpx.get(
                self._config.api_url + "/1.1/statuses/user_timeline.json",
                params=params,
                headers={"Authorization": f"Bearer {self._bearer_token}"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            tweets = resp.json()
            if not isinstance(tweets, list):
                raise ValueError("timeline response is not a list")
            ids = [_id_field(tweet, "id") for tweet in tweets]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise FetchError(f"Failed to fetch Twitter timeline page: {exc}") from exc

        logger.info("Fetched %d tweet(s) from @%s", len(tweets), self._config.screen_name)
        known_ids = [tweet_id for tweet_id in ids if tweet_id is not None]
        if not known_ids:
            return tweets, None
        # max_id is inclusive.
        return tweets, min(known_ids) - 1
