"""Page source interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from timelines.config import Config


class PageSource(ABC):
    """Abstract base class for page sources.

    A source pages through one account's history and converts its raw items
    into canonical records. The sync engine is source-agnostic: it only calls
    ``fetch_page`` and ``to_record``.
    """

    #: Whether ``fetch_page`` yields items newest first across all pages.
    #: Incremental early termination is only sound when this is True.
    newest_first: bool = True

    @classmethod
    @abstractmethod
    def from_config(cls, config: Config) -> PageSource:
        """Build the source from its section of the application config.

        Raises ValueError if that section is missing or incomplete.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short source name, used in logs and the registry."""

    @property
    @abstractmethod
    def collection(self) -> str:
        """Name of the snapshot field holding this source's records."""

    @property
    @abstractmethod
    def record_type(self) -> type:
        """Canonical record class produced by ``to_record``."""

    @abstractmethod
    def fetch_page(self, cursor: Any | None) -> tuple[list[Any], Any | None]:
        """Fetch one page of raw items.

        ``cursor=None`` requests the first (most recent) page. Returns the raw
        items and the cursor of the next page, or None at the end of history.
        Raises FetchError on transport, auth, or response-shape failures.
        """

    @abstractmethod
    def to_record(self, raw: Any) -> Any:
        """Convert one raw item to a canonical record. Raises DecodeError."""
