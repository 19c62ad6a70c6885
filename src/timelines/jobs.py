"""Sync job — wires a source, the seeded store, the engine, and snapshot output."""

from __future__ import annotations

import logging
from pathlib import Path

import timelines.sources  # noqa: F401  — triggers source registration
from timelines.config import Config
from timelines.sources.adapter import PageSource
from timelines.sources.cache import CachedPageSource
from timelines.sources.registry import get_source_class, registered_types
from timelines.storage.snapshot import latest_snapshot, load_snapshot, write_snapshots
from timelines.sync.engine import SyncEngine, SyncResult
from timelines.sync.partitions import YearPartitionStore

logger = logging.getLogger(__name__)


def build_source(
    source_type: str, config: Config, full_sync: bool = False, use_cache: bool = True
) -> PageSource:
    """Construct the registered source, wrapped in the page cache where it applies.

    The Last.fm page cache is only used for full syncs: during an incremental
    run new scrobbles shift every page number, so cached pages would be stale.
    """
    source_cls = get_source_class(source_type)
    if source_cls is None:
        raise ValueError(
            f"Unknown source '{source_type}'; must be one of: {', '.join(registered_types())}"
        )
    source = source_cls.from_config(config)

    if source_type == "lastfm" and full_sync and use_cache and config.lastfm is not None:
        source = CachedPageSource(source, config.lastfm.cache_dir)
    return source


def seed_store(source: PageSource, output_dir: str | Path) -> YearPartitionStore:
    """Seed a store with the latest year's snapshot, the resume boundary."""
    store = YearPartitionStore()
    latest = latest_snapshot(output_dir)
    if latest is None:
        logger.info("No existing %s snapshots in %s", source.collection, output_dir)
        return store

    year, path = latest
    records = load_snapshot(path, source.collection, source.record_type)
    store.seed(year, records)
    logger.info("Seeded %d %s for %d from %s", len(records), source.collection, year, path)
    return store


def run_sync(
    source_type: str,
    config: Config,
    output_dir: str | Path,
    full_sync: bool = False,
    use_cache: bool = True,
) -> SyncResult:
    """Sync one source into per-year snapshots under ``output_dir``.

    Snapshots are only written once the fetch loop has finished. A FetchError
    aborts the run with nothing written, so the next incremental run still
    resumes from the last complete snapshot. Raises PersistError if any year
    could not be written.
    """
    source = build_source(source_type, config, full_sync=full_sync, use_cache=use_cache)
    store = YearPartitionStore() if full_sync else seed_store(source, output_dir)

    logger.info(
        "Starting %s %s sync into %s",
        "full" if full_sync else "incremental",
        source.name,
        output_dir,
    )
    engine = SyncEngine(
        source,
        store,
        full_sync=full_sync,
        page_delay=config.page_delay_seconds,
    )
    result = engine.run()

    write_snapshots(output_dir, source.collection, store.partitions())
    return result
