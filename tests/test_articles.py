"""Tests for newsreel.storage.articles — dedup-on-insert and filtered reads."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from newsreel.ingestion.normalize import ArticleCandidate
from newsreel.storage.articles import query_latest, save_new
from newsreel.storage.connection import get_connection
from newsreel.storage.schema import init_db
from newsreel.storage.sources import create_source

BASE_TIME = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def db_path(tmp_path):
    path = str(tmp_path / "test.db")
    init_db(path)
    return path


def _candidate(item_id, source_id, **overrides) -> ArticleCandidate:
    defaults = {
        "source_item_id": item_id,
        "title": f"Title {item_id}",
        "body": f"Body for {item_id}.",
        "link": f"https://example.com/{item_id}",
        "published_at": BASE_TIME,
        "source_id": source_id,
    }
    defaults.update(overrides)
    return ArticleCandidate(**defaults)


def _count(db_path) -> int:
    with get_connection(db_path) as conn:
        return conn.execute("SELECT COUNT(*) FROM articles").fetchone()[0]


class TestSaveNew:
    def test_inserts_all_new_candidates(self, db_path):
        source = create_source(db_path, "Feed", "rss", "{}")
        inserted = save_new(db_path, [_candidate(f"i{n}", source.id) for n in range(3)])
        assert inserted == 3
        assert _count(db_path) == 3

    def test_empty_batch_is_noop(self, db_path):
        assert save_new(db_path, []) == 0
        assert _count(db_path) == 0

    def test_saving_same_batch_twice_is_idempotent(self, db_path):
        source = create_source(db_path, "Feed", "rss", "{}")
        batch = [_candidate(f"i{n}", source.id) for n in range(4)]

        assert save_new(db_path, batch) == 4
        assert save_new(db_path, batch) == 0
        assert _count(db_path) == 4

    def test_cross_batch_only_new_keys_inserted(self, db_path):
        source = create_source(db_path, "Feed", "rss", "{}")
        save_new(db_path, [_candidate("a", source.id), _candidate("b", source.id)])

        inserted = save_new(
            db_path,
            [_candidate("b", source.id), _candidate("c", source.id)],
        )
        assert inserted == 1
        with get_connection(db_path) as conn:
            keys = {r[0] for r in conn.execute("SELECT source_item_id FROM articles")}
        assert keys == {"a", "b", "c"}

    def test_duplicate_within_batch_inserted_once(self, db_path):
        source = create_source(db_path, "Feed", "rss", "{}")
        inserted = save_new(
            db_path,
            [_candidate("x", source.id, title="First"), _candidate("x", source.id, title="Second")],
        )
        assert inserted == 1
        with get_connection(db_path) as conn:
            title = conn.execute("SELECT title FROM articles").fetchone()["title"]
        assert title == "First"

    def test_same_item_id_under_different_sources(self, db_path):
        first = create_source(db_path, "A", "rss", "{}")
        second = create_source(db_path, "B", "rss", "{}")
        inserted = save_new(db_path, [_candidate("shared", first.id), _candidate("shared", second.id)])
        assert inserted == 2

    def test_existing_row_is_not_modified(self, db_path):
        source = create_source(db_path, "Feed", "rss", "{}")
        save_new(db_path, [_candidate("a", source.id, title="Original")])
        save_new(db_path, [_candidate("a", source.id, title="Edited upstream")])
        with get_connection(db_path) as conn:
            title = conn.execute("SELECT title FROM articles").fetchone()["title"]
        assert title == "Original"

    def test_unstamped_candidate_raises(self, db_path):
        with pytest.raises(ValueError, match="no source_id"):
            save_new(db_path, [_candidate("a", None)])

    def test_large_batch_spans_lookup_chunks(self, db_path):
        source = create_source(db_path, "Feed", "rss", "{}")
        save_new(db_path, [_candidate(f"i{n}", source.id) for n in range(600)])
        inserted = save_new(db_path, [_candidate(f"i{n}", source.id) for n in range(650)])
        assert inserted == 50

    def test_timestamps_stored_in_utc(self, db_path):
        source = create_source(db_path, "Feed", "rss", "{}")
        offset = timezone(timedelta(hours=2))
        save_new(
            db_path,
            [_candidate("a", source.id, published_at=datetime(2025, 6, 15, 14, 0, tzinfo=offset))],
        )
        with get_connection(db_path) as conn:
            stored = conn.execute("SELECT published_at FROM articles").fetchone()[0]
        assert stored == "2025-06-15T12:00:00+00:00"


class TestQueryLatest:
    @pytest.fixture()
    def seeded(self, db_path):
        rss = create_source(db_path, "Tech Feed", "rss", "{}")
        gh = create_source(db_path, "Repo", "github", "{}")
        save_new(
            db_path,
            [
                _candidate("old", rss.id, title="Old Python news",
                           published_at=BASE_TIME - timedelta(days=10), category="Tech"),
                _candidate("mid", rss.id, title="Rust release",
                           body="Mentions PYTHON in passing.",
                           published_at=BASE_TIME - timedelta(days=2), category="Tech"),
                _candidate("new", rss.id, title="Weather",
                           published_at=BASE_TIME, category="Misc"),
                _candidate("evt", gh.id, title="Push to org/repo",
                           published_at=BASE_TIME - timedelta(hours=1), category="PushEvent"),
            ],
        )
        return db_path, rss, gh

    def test_orders_newest_first(self, seeded):
        db_path, _, _ = seeded
        articles = query_latest(db_path)
        assert [a.source_item_id for a in articles] == ["new", "evt", "mid", "old"]

    def test_limit_and_offset(self, seeded):
        db_path, _, _ = seeded
        page = query_latest(db_path, limit=2, offset=1)
        assert [a.source_item_id for a in page] == ["evt", "mid"]

    def test_search_matches_title_or_body_case_insensitive(self, seeded):
        db_path, _, _ = seeded
        articles = query_latest(db_path, search="python")
        assert {a.source_item_id for a in articles} == {"old", "mid"}

    def test_search_treats_wildcards_literally(self, seeded):
        db_path, _, _ = seeded
        assert query_latest(db_path, search="%") == []

    def test_from_time(self, seeded):
        db_path, _, _ = seeded
        articles = query_latest(db_path, from_time=BASE_TIME - timedelta(days=3))
        assert {a.source_item_id for a in articles} == {"new", "evt", "mid"}

    def test_source_ids(self, seeded):
        db_path, _, gh = seeded
        articles = query_latest(db_path, source_ids=[gh.id])
        assert [a.source_item_id for a in articles] == ["evt"]

    def test_categories(self, seeded):
        db_path, _, _ = seeded
        articles = query_latest(db_path, categories=["Tech", "PushEvent"])
        assert {a.source_item_id for a in articles} == {"old", "mid", "evt"}

    def test_source_kind_is_case_insensitive(self, seeded):
        db_path, _, _ = seeded
        articles = query_latest(db_path, source_kind="GitHub")
        assert [a.source_item_id for a in articles] == ["evt"]

    def test_filters_combine_with_and(self, seeded):
        db_path, rss, _ = seeded
        articles = query_latest(
            db_path,
            source_ids=[rss.id],
            categories=["Tech"],
            from_time=BASE_TIME - timedelta(days=5),
        )
        assert [a.source_item_id for a in articles] == ["mid"]

    def test_rows_carry_source_name_and_kind(self, seeded):
        db_path, _, _ = seeded
        article = query_latest(db_path, limit=1)[0]
        assert article.source_name == "Tech Feed"
        assert article.source_kind == "rss"
        assert article.published_at == BASE_TIME.isoformat()
