"""Tests for newsreel.ingestion.registry — adapter registry."""

from __future__ import annotations

import pytest

import newsreel.ingestion  # noqa: F401
from newsreel.ingestion.adapter import SourceAdapter
from newsreel.ingestion.github_adapter import GitHubEventsAdapter
from newsreel.ingestion.reddit_adapter import RedditAdapter
from newsreel.ingestion.registry import (
    _REGISTRY,
    UnknownSourceKindError,
    get_adapter_class,
    register_adapter,
    registered_types,
    resolve_adapter,
)
from newsreel.ingestion.rss_adapter import RSSAdapter
from newsreel.ingestion.source_config import ConfigurationError, RssConfig


class _DummyAdapter(SourceAdapter):
    config_model = RssConfig

    @property
    def name(self) -> str:
        return "dummy"

    def fetch(self, config):
        return []


class TestRegistry:
    def setup_method(self):
        self._original = dict(_REGISTRY)

    def teardown_method(self):
        _REGISTRY.clear()
        _REGISTRY.update(self._original)

    def test_register_and_lookup(self):
        register_adapter("dummy", _DummyAdapter)
        assert get_adapter_class("dummy") is _DummyAdapter

    def test_lookup_is_case_insensitive(self):
        register_adapter("Dummy", _DummyAdapter)
        assert get_adapter_class("DUMMY") is _DummyAdapter
        assert "dummy" in registered_types()

    def test_lookup_unknown_returns_none(self):
        assert get_adapter_class("nonexistent") is None

    def test_resolve_unknown_raises_naming_kind(self):
        with pytest.raises(UnknownSourceKindError, match="mastodon") as exc_info:
            resolve_adapter("mastodon")
        assert exc_info.value.kind == "mastodon"
        assert isinstance(exc_info.value, ConfigurationError)

    def test_registered_types_sorted(self):
        register_adapter("zzz", _DummyAdapter)
        register_adapter("aaa", _DummyAdapter)
        types = registered_types()
        assert types == sorted(types)

    def test_builtin_adapters_registered(self):
        assert resolve_adapter("rss") is RSSAdapter
        assert resolve_adapter("GitHub") is GitHubEventsAdapter
        assert resolve_adapter("reddit") is RedditAdapter
        assert {"rss", "github", "reddit"} <= set(registered_types())
