"""Canonical records — the source-normalized form of one archived activity item.

Records are frozen dataclasses. Equality and hashing cover only the identity
fields, so a set of records never holds the same post, tweet or listen twice
even if its payload was edited upstream. ``sort_key`` defines the persisted
order (snapshots are written descending by it) and ``year`` the partition a
record belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from timelines.errors import DecodeError


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive values are assumed to already be UTC.
    """
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    dt = datetime.fromisoformat(candidate)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO 8601 UTC with a ``Z`` suffix."""
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _require(data: dict, key: str) -> Any:
    if key not in data or data[key] is None:
        raise DecodeError(f"missing required field '{key}'")
    return data[key]


# --- Bluesky ---


@dataclass(frozen=True)
class BlueskyPostReply:
    """The parent post a Bluesky post replies to."""

    uri: str
    author_did: str | None = None
    author_handle: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"uri": self.uri}
        if self.author_did is not None:
            data["author_did"] = self.author_did
        if self.author_handle is not None:
            data["author_handle"] = self.author_handle
        return data

    @classmethod
    def from_dict(cls, data: dict) -> BlueskyPostReply:
        return cls(
            uri=_require(data, "uri"),
            author_did=data.get("author_did"),
            author_handle=data.get("author_handle"),
        )


@dataclass(frozen=True)
class BlueskyPost:
    """A post authored by the archived account. Identity is the AT URI."""

    uri: str
    created_at: datetime = field(compare=False)
    text: str = field(compare=False, default="")
    in_reply_to: BlueskyPostReply | None = field(compare=False, default=None)

    @property
    def year(self) -> int:
        return self.created_at.astimezone(timezone.utc).year

    @property
    def sort_key(self) -> str:
        return self.uri

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "uri": self.uri,
            "created_at": format_timestamp(self.created_at),
            "text": self.text,
        }
        if self.in_reply_to is not None:
            data["in_reply_to"] = self.in_reply_to.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> BlueskyPost:
        try:
            reply = data.get("in_reply_to")
            return cls(
                uri=_require(data, "uri"),
                created_at=parse_timestamp(_require(data, "created_at")),
                text=data.get("text", ""),
                in_reply_to=BlueskyPostReply.from_dict(reply) if reply else None,
            )
        except (ValueError, TypeError, AttributeError) as exc:
            raise DecodeError(f"Invalid Bluesky post: {exc}") from exc


# --- Last.fm ---


@dataclass(frozen=True)
class Track:
    """One scrobble. There is no natural ID, so every field is part of identity."""

    name: str
    artist: str
    album: str
    listened_at: datetime

    @property
    def year(self) -> int:
        return self.listened_at.astimezone(timezone.utc).year

    @property
    def sort_key(self) -> tuple:
        # Timestamps tie when a scrobbler batches plays; name breaks the tie.
        return (self.listened_at, self.name, self.artist, self.album)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "artist": self.artist,
            "album": self.album,
            "listened_at": format_timestamp(self.listened_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Track:
        try:
            return cls(
                name=_require(data, "name"),
                artist=data.get("artist", ""),
                album=data.get("album", ""),
                listened_at=parse_timestamp(_require(data, "listened_at")),
            )
        except (ValueError, TypeError, AttributeError) as exc:
            raise DecodeError(f"Invalid track: {exc}") from exc


# --- Twitter ---


class MediaType(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
    GIF = "animated_gif"


@dataclass(frozen=True)
class TweetUrlEntity:
    display_url: str
    url: str
    expanded_url: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"display_url": self.display_url}
        if self.expanded_url is not None:
            data["expanded_url"] = self.expanded_url
        data["url"] = self.url
        return data

    @classmethod
    def from_dict(cls, data: dict) -> TweetUrlEntity:
        return cls(
            display_url=_require(data, "display_url"),
            url=_require(data, "url"),
            expanded_url=data.get("expanded_url"),
        )


@dataclass(frozen=True)
class TweetMediaEntity:
    id: int
    type: MediaType
    url: str

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type.value, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict) -> TweetMediaEntity:
        return cls(
            id=int(_require(data, "id")),
            type=MediaType(_require(data, "type")),
            url=_require(data, "url"),
        )


@dataclass(frozen=True)
class TweetEntities:
    urls: tuple[TweetUrlEntity, ...] = ()
    media: tuple[TweetMediaEntity, ...] = ()

    def is_empty(self) -> bool:
        return not self.urls and not self.media

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        if self.urls:
            data["urls"] = [url.to_dict() for url in self.urls]
        if self.media:
            data["media"] = [media.to_dict() for media in self.media]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> TweetEntities:
        return cls(
            urls=tuple(TweetUrlEntity.from_dict(u) for u in data.get("urls") or []),
            media=tuple(TweetMediaEntity.from_dict(m) for m in data.get("media") or []),
        )


@dataclass(frozen=True)
class TweetReply:
    status_id: int
    user_id: int
    user_name: str

    def to_dict(self) -> dict:
        return {
            "status_id": self.status_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TweetReply:
        return cls(
            status_id=int(_require(data, "status_id")),
            user_id=int(_require(data, "user_id")),
            user_name=_require(data, "user_name"),
        )


@dataclass(frozen=True)
class Tweet:
    """A tweet authored by the archived account. Identity is the numeric ID."""

    id: int
    created_at: datetime = field(compare=False)
    text: str = field(compare=False, default="")
    entities: TweetEntities | None = field(compare=False, default=None)
    in_reply_to: TweetReply | None = field(compare=False, default=None)

    @property
    def year(self) -> int:
        return self.created_at.astimezone(timezone.utc).year

    @property
    def sort_key(self) -> int:
        return self.id

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "created_at": format_timestamp(self.created_at),
            "text": self.text,
        }
        if self.entities is not None and not self.entities.is_empty():
            data["entities"] = self.entities.to_dict()
        if self.in_reply_to is not None:
            data["in_reply_to"] = self.in_reply_to.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Tweet:
        try:
            entities = TweetEntities.from_dict(data["entities"]) if data.get("entities") else None
            reply = data.get("in_reply_to")
            return cls(
                id=int(_require(data, "id")),
                created_at=parse_timestamp(_require(data, "created_at")),
                text=data.get("text", ""),
                entities=entities if entities is not None and not entities.is_empty() else None,
                in_reply_to=TweetReply.from_dict(reply) if reply else None,
            )
        except (ValueError, TypeError, AttributeError) as exc:
            raise DecodeError(f"Invalid tweet: {exc}") from exc
