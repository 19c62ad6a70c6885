"""Sync engine — the fetch, convert, dedupe, and partition loop.

Incremental runs start from a store seeded with the latest snapshot year and
page through the source newest first. The first record that is already in the
store marks the resume boundary: everything after it in delivery order was
persisted by an earlier run, so the loop stops right there, mid-page if need
be. Full syncs start from an empty store and walk the entire history, simply
dropping any duplicate an unstable pagination produces.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from timelines.errors import DecodeError
from timelines.sources.adapter import PageSource
from timelines.sync.partitions import YearPartitionStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_DELAY = 1.0  # seconds between page fetches


@dataclass(frozen=True)
class SyncResult:
    """Counters for one completed sync run."""

    pages: int
    inserted: int
    duplicates: int
    skipped: int
    stopped_at_boundary: bool


class SyncEngine:
    """Drives one source into a YearPartitionStore until a stop condition fires."""

    def __init__(
        self,
        source: PageSource,
        store: YearPartitionStore | None = None,
        *,
        full_sync: bool = False,
        page_delay: float = DEFAULT_PAGE_DELAY,
    ) -> None:
        self.source = source
        self.store = store if store is not None else YearPartitionStore()
        self.full_sync = full_sync
        self.page_delay = page_delay

    @property
    def stops_at_boundary(self) -> bool:
        """Whether a duplicate ends the run rather than being dropped."""
        return not self.full_sync and self.source.newest_first

    def run(self) -> SyncResult:
        """Fetch pages until the resume boundary or the end of history.

        FetchError from the source propagates unchanged; records merged from
        earlier pages stay in ``self.store``.
        """
        if not self.full_sync and not self.source.newest_first:
            logger.warning(
                "Source '%s' is not newest-first; syncing to exhaustion without "
                "early termination",
                self.source.name,
            )

        pages = inserted = duplicates = skipped = 0
        cursor = None

        while True:
            items, next_cursor = self.source.fetch_page(cursor)
            pages += 1

            for raw in items:
                try:
                    record = self.source.to_record(raw)
                except DecodeError as exc:
                    skipped += 1
                    logger.warning("Skipping malformed %s item: %s", self.source.name, exc)
                    continue

                if self.store.insert(record):
                    inserted += 1
                    continue

                duplicates += 1
                if self.stops_at_boundary:
                    logger.info(
                        "Reached previously synced %s record on page %d; stopping",
                        self.source.name,
                        pages,
                    )
                    return self._finish(pages, inserted, duplicates, skipped, True)

            if next_cursor is None:
                break
            if next_cursor == cursor:
                logger.warning(
                    "Source '%s' returned the same cursor %r twice; stopping",
                    self.source.name,
                    cursor,
                )
                break

            cursor = next_cursor
            if self.page_delay > 0:
                time.sleep(self.page_delay)

        return self._finish(pages, inserted, duplicates, skipped, False)

    def _finish(
        self,
        pages: int,
        inserted: int,
        duplicates: int,
        skipped: int,
        stopped_at_boundary: bool,
    ) -> SyncResult:
        logger.info(
            "Sync of %s complete: %d page(s), %d new, %d duplicate(s), %d skipped",
            self.source.name,
            pages,
            inserted,
            duplicates,
            skipped,
        )
        return SyncResult(
            pages=pages,
            inserted=inserted,
            duplicates=duplicates,
            skipped=skipped,
            stopped_at_boundary=stopped_at_boundary,
        )
