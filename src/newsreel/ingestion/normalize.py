"""Normalized article candidate emitted by source adapters, plus shared helpers."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from html import unescape

_HTML_TAG_RE = re.compile(r"<[^>]+>")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Return ``dt`` in UTC. Naive datetimes are assumed to already be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def fallback_item_id() -> str:
    """Synthesize a provider item id for items that carry none."""
    return uuid.uuid4().hex


def strip_html(text: str) -> str:
    """Remove HTML tags and unescape entities."""
    return unescape(_HTML_TAG_RE.sub("", text)).strip()


@dataclass(frozen=True)
class ArticleCandidate:
    """Article produced by an adapter, not yet persisted.

    ``source_id`` is unset when the adapter emits the candidate; the
    aggregation job stamps it before handing the batch to storage.
    """

    source_item_id: str
    title: str
    body: str
    link: str
    published_at: datetime
    author: str | None = None
    image_url: str | None = None
    category: str | None = None
    metadata: str | None = None
    indexed_at: datetime = field(default_factory=utc_now)
    source_id: int | None = None
