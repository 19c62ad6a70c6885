"""Sync core — year-partitioned record store and the incremental fetch loop."""

from timelines.sync.engine import SyncEngine, SyncResult
from timelines.sync.partitions import YearPartitionStore

__all__ = ["SyncEngine", "SyncResult", "YearPartitionStore"]
