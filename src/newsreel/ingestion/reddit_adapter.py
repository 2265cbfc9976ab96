"""Reddit source adapter — fetches a subreddit listing (hot, new or top)."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from html import unescape

from newsreel.ingestion.adapter import SourceAdapter
from newsreel.ingestion.normalize import ArticleCandidate, fallback_item_id, utc_now
from newsreel.ingestion.source_config import RedditConfig

logger = logging.getLogger(__name__)

_REDDIT_LISTING_URL = "https://www.reddit.com/r/{}/{}.json"
_REDDIT_BASE_URL = "https://www.reddit.com"
_DEFAULT_CATEGORY = "Reddit"
_MAX_LIMIT = 100
_REQUEST_DELAY = 2.0  # seconds, before every listing request


def _post_link(post: dict) -> str:
    url = post.get("url") or ""
    if url.startswith(("http://", "https://")):
        return url
    return f"{_REDDIT_BASE_URL}{post.get('permalink', '')}"


def _post_image(post: dict) -> str | None:
    images = (post.get("preview") or {}).get("images") or []
    if images:
        source_url = (images[0].get("source") or {}).get("url")
        if source_url:
            return unescape(source_url)
    thumbnail = post.get("thumbnail") or ""
    if thumbnail.startswith("http"):
        return unescape(thumbnail)
    return None


def _post_published_at(post: dict) -> datetime:
    created_utc = post.get("created_utc")
    if created_utc:
        try:
            return datetime.fromtimestamp(float(created_utc), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            pass
    return utc_now()


class RedditAdapter(SourceAdapter):
    """Adapter for a subreddit's public JSON listing."""

    config_model = RedditConfig

    @property
    def name(self) -> str:
        return "reddit"

    def fetch(self, config: RedditConfig) -> list[ArticleCandidate]:
        limit = min(config.limit, _MAX_LIMIT)
        params: dict[str, str | int] = {"limit": limit}
        if config.sort_type == "top":
            params["t"] = "week"

        time.sleep(_REQUEST_DELAY)
        resp = self._client.get(
            _REDDIT_LISTING_URL.format(config.subreddit, config.sort_type),
            params=params,
        )
        if resp.status_code == 429:
            logger.warning(
                "Reddit rate limit hit for r/%s; skipping this poll", config.subreddit
            )
            return []
        resp.raise_for_status()

        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected Reddit payload for r/{config.subreddit}")

        posts = (data.get("data") or {}).get("children") or []
        category = config.category or _DEFAULT_CATEGORY
        items: list[ArticleCandidate] = []

        # Children without a data object carry nothing usable.
        posts = [
            child["data"] for child in posts
            if isinstance(child, dict) and isinstance(child.get("data"), dict)
        ]

        for post in posts[:limit]:
            items.append(
                ArticleCandidate(
                    source_item_id=post.get("id") or fallback_item_id(),
                    title=(post.get("title") or "").strip() or "Untitled",
                    body=post.get("selftext") or "",
                    link=_post_link(post),
                    published_at=_post_published_at(post),
                    author=post.get("author"),
                    image_url=_post_image(post),
                    category=category,
                )
            )

        logger.info("Fetched %d posts from Reddit r/%s", len(items), config.subreddit)
        return items
