"""Bluesky source adapter — pages through the account's own author feed."""

from __future__ import annotations

import logging

import httpx

from timelines.config import BlueskyConfig, Config
from timelines.errors import DecodeError, FetchError
from timelines.records import BlueskyPost, BlueskyPostReply, parse_timestamp
from timelines.sources.adapter import PageSource

logger = logging.getLogger(__name__)

_CREATE_SESSION = "/xrpc/com.atproto.server.createSession"
_GET_AUTHOR_FEED = "/xrpc/app.bsky.feed.getAuthorFeed"
_POST_RECORD_TYPE = "app.bsky.feed.post"
_REPOST_REASON_TYPE = "app.bsky.feed.defs#reasonRepost"


def is_repost(feed_item: dict) -> bool:
    reason = feed_item.get("reason") or {}
    return reason.get("$type") == _REPOST_REASON_TYPE


def _is_expired_session(resp: httpx.Response) -> bool:
    """Access tokens are short-lived; the PDS answers 401 or 400 ExpiredToken."""
    if resp.status_code == 401:
        return True
    if resp.status_code != 400:
        return False
    try:
        return resp.json().get("error") == "ExpiredToken"
    except (ValueError, AttributeError):
        return False


class BlueskySource(PageSource):
    """Adapter for a Bluesky account's author feed (newest first, cursor paged)."""

    def __init__(self, config: BlueskyConfig, timeout: float = 30.0) -> None:
        self._config = config
        self._timeout = timeout
        self._access_jwt: str | None = None
        self._did: str | None = None

    @classmethod
    def from_config(cls, config: Config) -> BlueskySource:
        if config.bluesky is None:
            raise ValueError("Bluesky configuration is missing")
        return cls(config.bluesky, timeout=config.http_timeout_seconds)

    @property
    def name(self) -> str:
        return "bluesky"

    @property
    def collection(self) -> str:
        return "posts"

    @property
    def record_type(self) -> type:
        return BlueskyPost

    def _create_session(self) -> None:
        """Log in with the app password and remember the access token and DID."""
        try:
            resp = httpx.post(
                self._config.service_url + _CREATE_SESSION,
                json={
                    "identifier": self._config.handle,
                    "password": self._config.app_password,
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
            session = resp.json()
            self._access_jwt = session["accessJwt"]
            self._did = session["did"]
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            raise FetchError(f"Bluesky login failed for {self._config.handle}: {exc}") from exc
        logger.info("Created Bluesky session for %s", self._config.handle)

    def _get_feed(self, params: dict) -> httpx.Response:
        return httpx.get(
            self._config.service_url + _GET_AUTHOR_FEED,
            params=params,
            headers={"Authorization": f"Bearer {self._access_jwt}"},
            timeout=self._timeout,
        )

    def fetch_page(self, cursor: str | None) -> tuple[list[dict], str | None]:
        if self._access_jwt is None:
            self._create_session()

        params: dict[str, str | int] = {
            "actor": self._did,
            "limit": self._config.page_size,
        }
        if cursor is not None:
            params["cursor"] = cursor

        try:
            resp = self._get_feed(params)
            if _is_expired_session(resp):
                logger.info("Bluesky session expired; logging in again")
                self._create_session()
                params["actor"] = self._did
                resp = self._get_feed(params)
            resp.raise_for_status()
            data = resp.json()
            feed = data["feed"]
            items = [
                item for item in feed
                if not is_repost(item)
                and ((item.get("post") or {}).get("record") or {}).get("$type") == _POST_RECORD_TYPE
            ]
            next_cursor = data.get("cursor")
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise FetchError(f"Failed to fetch Bluesky feed page: {exc}") from exc

        logger.info(
            "Fetched %d Bluesky post(s) (%d skipped)", len(items), len(feed) - len(items)
        )
        return items, next_cursor

    def to_record(self, raw: dict) -> BlueskyPost:
        try:
            post = raw["post"]
            record = post["record"]
            reply = None
            parent = (raw.get("reply") or {}).get("parent")
            if parent and parent.get("uri"):
                author = parent.get("author") or {}
                reply = BlueskyPostReply(
                    uri=parent["uri"],
                    author_did=author.get("did"),
                    author_handle=author.get("handle"),
                )
            return BlueskyPost(
                uri=post["uri"],
                created_at=parse_timestamp(record["createdAt"]),
                text=record.get("text", ""),
                in_reply_to=reply,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise DecodeError(f"Invalid Bluesky feed item: {exc!r}") from exc
