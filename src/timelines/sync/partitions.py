"""Year partition store — ordered sets of canonical records keyed by year."""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from typing import Protocol


class Record(Protocol):
    """What the store needs from a canonical record."""

    @property
    def year(self) -> int: ...

    @property
    def sort_key(self) -> object: ...

    def __hash__(self) -> int: ...


class YearPartitionStore:
    """In-memory mapping of year -> ordered set of records.

    Each partition is a dict used as an insertion-ordered set. Insertion order
    is kept for inspection only; snapshots are written in ``sort_key`` order.
    """

    def __init__(self) -> None:
        self._partitions: dict[int, dict[Hashable, None]] = {}

    def seed(self, year: int, records: Iterable[Record]) -> None:
        """Install the starting records for one year, typically from a snapshot.

        Raises ValueError if any record does not belong to ``year``.
        """
        partition = self._partitions.setdefault(year, {})
        for record in records:
            if record.year != year:
                raise ValueError(
                    f"Record {record!r} belongs to {record.year}, not {year}"
                )
            partition.setdefault(record, None)

    def insert(self, record: Record) -> bool:
        """Route a record to its year. Returns False if it was already present."""
        partition = self._partitions.setdefault(record.year, {})
        if record in partition:
            return False
        partition[record] = None
        return True

    def get(self, year: int) -> list[Record]:
        """Records for one year in insertion order (empty if untouched)."""
        return list(self._partitions.get(year, {}))

    def partitions(self) -> list[tuple[int, list[Record]]]:
        """Every partition touched this run, ordered by year."""
        return [(year, list(records)) for year, records in sorted(self._partitions.items())]

    def __contains__(self, record: object) -> bool:
        year = getattr(record, "year", None)
        return year in self._partitions and record in self._partitions[year]

    def __len__(self) -> int:
        return sum(len(records) for records in self._partitions.values())
