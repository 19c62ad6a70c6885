"""On-disk page cache — wraps a PageSource and stores each fetched page as JSON."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from timelines.config import Config
from timelines.errors import FetchError
from timelines.sources.adapter import PageSource

logger = logging.getLogger(__name__)


class CachedPageSource(PageSource):
    """Serve pages from ``cache_dir`` when present, otherwise fetch and store them.

    Cache entries are written once and never rewritten. Only use this where a
    cursor always names the same content, e.g. page numbers while walking a
    full history that is not receiving new items.
    """

    def __init__(self, inner: PageSource, cache_dir: str | Path) -> None:
        self._inner = inner
        self._cache_dir = Path(cache_dir)
        self.newest_first = inner.newest_first

    @classmethod
    def from_config(cls, config: Config) -> CachedPageSource:
        raise TypeError("CachedPageSource wraps an existing source; construct it directly")

    @property
    def name(self) -> str:
        return self._inner.name

    @property
    def collection(self) -> str:
        return self._inner.collection

    @property
    def record_type(self) -> type:
        return self._inner.record_type

    def _page_path(self, cursor: Any | None) -> Path:
        key = "first" if cursor is None else str(cursor)
        return self._cache_dir / f"{key}.json"

    def fetch_page(self, cursor: Any | None) -> tuple[list[Any], Any | None]:
        path = self._page_path(cursor)
        if path.exists():
            logger.info("Reading %s page %s from cache", self.name, cursor)
            try:
                entry = json.loads(path.read_text(encoding="utf-8"))
                return entry["items"], entry["next_cursor"]
            except (OSError, ValueError, KeyError, TypeError) as exc:
                raise FetchError(f"Corrupt page cache entry {path}: {exc}") from exc

        items, next_cursor = self._inner.fetch_page(cursor)
        tmp_path = path.with_suffix(".tmp")
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps({"items": items, "next_cursor": next_cursor}, indent=2),
                encoding="utf-8",
            )
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError):
            logger.warning("Could not cache %s page %s at %s", self.name, cursor, path)
            tmp_path.unlink(missing_ok=True)
        return items, next_cursor

    def to_record(self, raw: Any) -> Any:
        return self._inner.to_record(raw)
