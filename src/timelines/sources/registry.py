"""Source registry — maps type strings to page source classes."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timelines.sources.adapter import PageSource

_REGISTRY: dict[str, type[PageSource]] = {}


def register_source(type_name: str, cls: type[PageSource]) -> None:
    """Register a source class for a given type name."""
    _REGISTRY[type_name] = cls


def get_source_class(type_name: str) -> type[PageSource] | None:
    """Look up a source class by type name. Returns None if not found."""
    return _REGISTRY.get(type_name)


def registered_types() -> list[str]:
    """Return a sorted list of all registered source type names."""
    return sorted(_REGISTRY)
