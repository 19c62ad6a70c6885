"""Error types shared by sources, the sync engine, and snapshot storage."""

from __future__ import annotations


class ArchiveError(Exception):
    """Base class for all timelines errors."""


class FetchError(ArchiveError):
    """A source page could not be fetched (transport, auth, or response shape)."""


class DecodeError(ArchiveError):
    """A raw item or snapshot could not be converted to canonical records."""


class PersistError(ArchiveError):
    """One or more year snapshots could not be written."""

    def __init__(self, failed_years: list[int]) -> None:
        self.failed_years = sorted(failed_years)
        years = ", ".join(str(year) for year in self.failed_years)
        super().__init__(f"Failed to write snapshot(s) for year(s): {years}")
