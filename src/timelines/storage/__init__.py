"""Storage layer — per-year snapshot files."""

from timelines.storage.snapshot import (
    latest_snapshot,
    load_snapshot,
    write_snapshot,
    write_snapshots,
)

__all__ = ["latest_snapshot", "load_snapshot", "write_snapshot", "write_snapshots"]
