"""Adapter registry — maps source kinds to adapter classes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from newsreel.ingestion.source_config import ConfigurationError

if TYPE_CHECKING:
    from newsreel.ingestion.adapter import SourceAdapter

_REGISTRY: dict[str, type[SourceAdapter]] = {}


class UnknownSourceKindError(ConfigurationError):
    """No adapter is registered for a source kind."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"No adapter registered for source kind {kind!r}")
        self.kind = kind


def register_adapter(kind: str, cls: type[SourceAdapter]) -> None:
    """Register an adapter class for a given source kind."""
    _REGISTRY[kind.lower()] = cls


def get_adapter_class(kind: str) -> type[SourceAdapter] | None:
    """Look up an adapter class by kind, ignoring case. Returns None if not found."""
    return _REGISTRY.get(kind.lower())


def resolve_adapter(kind: str) -> type[SourceAdapter]:
    """Like get_adapter_class, but raises UnknownSourceKindError if not found."""
    cls = get_adapter_class(kind)
    if cls is None:
        raise UnknownSourceKindError(kind)
    return cls


def registered_types() -> list[str]:
    """Return a sorted list of all registered source kinds."""
    return sorted(_REGISTRY)
