"""Ingestion — source adapters, their configs, and the adapter registry."""

from newsreel.ingestion.github_adapter import GitHubEventsAdapter
from newsreel.ingestion.reddit_adapter import RedditAdapter
from newsreel.ingestion.registry import register_adapter
from newsreel.ingestion.rss_adapter import RSSAdapter

register_adapter("rss", RSSAdapter)
register_adapter("github", GitHubEventsAdapter)
register_adapter("reddit", RedditAdapter)
