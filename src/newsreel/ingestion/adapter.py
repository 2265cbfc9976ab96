"""Source adapter interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

import httpx

from newsreel.ingestion.normalize import ArticleCandidate
from newsreel.ingestion.source_config import SourceConfig


class SourceAdapter(ABC):
    """Abstract base class for source adapters.

    Every adapter knows how to fetch one kind of provider payload and
    normalize it into article candidates. The rest of the system is
    source-agnostic. Adapters share the caller's HTTP client and must pass
    any per-source headers or credentials on the request itself.
    """

    config_model: ClassVar[type[SourceConfig]]

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable adapter name."""

    @abstractmethod
    def fetch(self, config: SourceConfig) -> list[ArticleCandidate]:
        """Fetch up to ``config.limit`` items and normalize them.

        Transport and parse errors propagate to the caller; an adapter never
        returns a partial batch after a failure.
        """
