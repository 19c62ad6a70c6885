"""Twitter archive source — reads tweets.js files from a Twitter data export."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from timelines.config import Config, TwitterConfig
from timelines.errors import DecodeError, FetchError
from timelines.records import Tweet
from timelines.sources.adapter import PageSource
from timelines.sources.twitter_adapter import tweet_from_raw

logger = logging.getLogger(__name__)

# window.YTD.tweets.part0 = [ ... ]
_ASSIGNMENT_RE = re.compile(r"^\s*window\.YTD\.\w+\.part\d+\s*=\s*")


def is_retweet(tweet: dict) -> bool:
    return str(tweet.get("full_text", "")).startswith("RT @")


def read_archive_file(path: str | Path) -> list:
    """Parse one archive file into its list of wrapped tweet objects."""
    try:
        text = Path(path).read_text(encoding="utf-8")
        items = json.loads(_ASSIGNMENT_RE.sub("", text, count=1))
    except (OSError, ValueError) as exc:
        raise FetchError(f"Could not read Twitter archive {path}: {exc}") from exc
    if not isinstance(items, list):
        raise FetchError(f"Twitter archive {path} does not hold a list of tweets")
    return items


class TwitterArchiveSource(PageSource):
    """Adapter for archived tweets. Each archive file is one page.

    Archive files are not ordered newest first, so the engine walks every
    file instead of stopping at the first known tweet.
    """

    newest_first = False

    def __init__(self, archive_files: list[str] | tuple[str, ...], include_retweets: bool = False) -> None:
        if not archive_files:
            raise ValueError("Twitter archive import needs at least one archive file")
        self._archive_files = list(archive_files)
        self._include_retweets = include_retweets

    @classmethod
    def from_config(cls, config: Config) -> TwitterArchiveSource:
        twitter = config.twitter or TwitterConfig()
        return cls(twitter.archive_files, include_retweets=twitter.include_retweets)

    @property
    def name(self) -> str:
        return "twitter-archive"

    @property
    def collection(self) -> str:
        return "tweets"

    @property
    def record_type(self) -> type:
        return Tweet

    def fetch_page(self, cursor: int | None) -> tuple[list, int | None]:
        index = cursor if cursor is not None else 0
        path = self._archive_files[index]
        items = read_archive_file(path)

        kept = []
        for item in items:
            tweet = item.get("tweet") if isinstance(item, dict) else None
            if isinstance(tweet, dict) and not self._include_retweets and is_retweet(tweet):
                continue
            kept.append(item)

        logger.info(
            "Read %d tweet(s) from %s (%d retweet(s) skipped)",
            len(kept), path, len(items) - len(kept),
        )
        next_index = index + 1
        return kept, next_index if next_index < len(self._archive_files) else None

    def to_record(self, raw: dict) -> Tweet:
        if not isinstance(raw, dict) or not isinstance(raw.get("tweet"), dict):
            raise DecodeError(f"Archive entry is not a wrapped tweet: {json.dumps(raw)[:200]}")
        return tweet_from_raw(raw["tweet"])
