"""RSS/Atom feed source adapter."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import feedparser

from newsreel.ingestion.adapter import SourceAdapter
from newsreel.ingestion.normalize import (
    ArticleCandidate,
    fallback_item_id,
    strip_html,
    to_utc,
    utc_now,
)
from newsreel.ingestion.source_config import RssConfig

logger = logging.getLogger(__name__)

_IMG_SRC_RE = re.compile(r"""<img[^>]+src\s*=\s*["']([^"']+)["']""", re.IGNORECASE)


class FeedParseError(ValueError):
    """The response body could not be read as an RSS or Atom feed."""


def _parse_pub_date(entry: dict) -> datetime | None:
    """Extract the publication date from a feed entry, converted to UTC."""
    raw = entry.get("published") or entry.get("updated")
    if raw:
        try:
            return to_utc(parsedate_to_datetime(raw))
        except (ValueError, TypeError):
            pass
    # feedparser also provides a parsed UTC tuple, which covers ISO 8601 dates
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if parsed:
        try:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
        except (ValueError, TypeError):
            pass
    return None


def _raw_content(entry: dict) -> str:
    """Return the best available body markup: full content, then summary."""
    # feedparser puts content:encoded / atom:content in entry.content[0].value
    if entry.get("content"):
        value = entry["content"][0].get("value", "")
        if value:
            return value
    return entry.get("summary", "") or entry.get("description", "") or ""


def _find_image(entry: dict, raw_body: str) -> str | None:
    """Pick an image from media extensions, image enclosures, then inline markup."""
    for key in ("media_thumbnail", "media_content"):
        for media in entry.get(key) or []:
            url = media.get("url")
            if url:
                return url
    for enclosure in entry.get("enclosures") or []:
        if (enclosure.get("type") or "").startswith("image/") and enclosure.get("href"):
            return enclosure["href"]
    match = _IMG_SRC_RE.search(raw_body)
    return match.group(1) if match else None


class RSSAdapter(SourceAdapter):
    """Adapter for RSS and Atom feeds."""

    config_model = RssConfig

    @property
    def name(self) -> str:
        return "rss"

    def fetch(self, config: RssConfig) -> list[ArticleCandidate]:
        """Fetch and parse a single RSS/Atom feed, keeping the first ``limit`` entries."""
        response = self._client.get(config.url)
        response.raise_for_status()

        feed = feedparser.parse(response.content)
        if feed.bozo and not feed.entries:
            raise FeedParseError(
                f"Could not parse feed at {config.url}: {feed.get('bozo_exception')}"
            )

        items: list[ArticleCandidate] = []
        for entry in feed.entries[: config.limit]:
            raw_body = _raw_content(entry)
            link = entry.get("link") or ""
            items.append(
                ArticleCandidate(
                    source_item_id=entry.get("id") or link or fallback_item_id(),
                    title=strip_html(entry.get("title", "")),
                    body=strip_html(raw_body),
                    link=link,
                    published_at=_parse_pub_date(entry) or utc_now(),
                    author=entry.get("author"),
                    image_url=_find_image(entry, raw_body),
                    category=config.category,
                )
            )

        logger.info("Fetched %d items from %s", len(items), config.url)
        return items
