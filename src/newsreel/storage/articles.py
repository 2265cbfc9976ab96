"""Article persistence — dedup-on-insert and filtered reads."""

from __future__ import annotations

import logging
import sqlite3
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from newsreel.ingestion.normalize import ArticleCandidate, to_utc
from newsreel.storage.connection import get_connection

logger = logging.getLogger(__name__)

_KEY_LOOKUP_CHUNK = 500  # stays under SQLite's bound-parameter limit


@dataclass(frozen=True)
class Article:
    """A persisted article joined with its owning source."""

    id: int
    source_id: int
    source_name: str
    source_kind: str
    source_item_id: str
    title: str
    body: str
    link: str
    published_at: str
    author: str | None
    image_url: str | None
    category: str | None
    metadata: str | None
    indexed_at: str


def _format_ts(dt: datetime) -> str:
    # Fixed precision keeps lexical order equal to chronological order.
    return to_utc(dt).isoformat(timespec="seconds")


def _existing_keys(
    conn: sqlite3.Connection, source_id: int, item_ids: Sequence[str]
) -> set[str]:
    found: set[str] = set()
    for start in range(0, len(item_ids), _KEY_LOOKUP_CHUNK):
        chunk = item_ids[start : start + _KEY_LOOKUP_CHUNK]
        placeholders = ", ".join("?" for _ in chunk)
        rows = conn.execute(
            "SELECT source_item_id FROM articles "
            f"WHERE source_id = ? AND source_item_id IN ({placeholders})",
            (source_id, *chunk),
        ).fetchall()
        found.update(r["source_item_id"] for r in rows)
    return found


def save_new(database_path: str, candidates: Iterable[ArticleCandidate]) -> int:
    """Persist candidates whose (source_id, source_item_id) is not yet stored.

    Duplicates against storage and within the batch are skipped silently.
    The lookup and inserts share one write transaction, and the unique index
    turns any remaining race into a no-op. Returns the number inserted.

    Raises ValueError if a candidate has not been stamped with a source_id.
    """
    candidates = list(candidates)
    if not candidates:
        return 0

    by_source: dict[int, list[ArticleCandidate]] = defaultdict(list)
    for candidate in candidates:
        if candidate.source_id is None:
            raise ValueError(
                f"Article candidate {candidate.source_item_id!r} has no source_id"
            )
        by_source[candidate.source_id].append(candidate)

    inserted = 0
    with get_connection(database_path, immediate=True) as conn:
        for source_id, batch in by_source.items():
            seen = _existing_keys(conn, source_id, [c.source_item_id for c in batch])
            for candidate in batch:
                if candidate.source_item_id in seen:
                    continue
                seen.add(candidate.source_item_id)
                cursor = conn.execute(
                    "INSERT INTO articles "
                    "(source_id, source_item_id, title, body, link, published_at, "
                    "author, image_url, category, metadata, indexed_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(source_id, source_item_id) DO NOTHING",
                    (
                        source_id,
                        candidate.source_item_id,
                        candidate.title,
                        candidate.body,
                        candidate.link,
                        _format_ts(candidate.published_at),
                        candidate.author,
                        candidate.image_url,
                        candidate.category,
                        candidate.metadata,
                        _format_ts(candidate.indexed_at),
                    ),
                )
                inserted += cursor.rowcount

    logger.info(
        "Saved %d new article(s) out of %d candidate(s)", inserted, len(candidates)
    )
    return inserted


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def query_latest(
    database_path: str,
    *,
    limit: int = 10,
    offset: int = 0,
    search: str | None = None,
    from_time: datetime | None = None,
    source_ids: Sequence[int] | None = None,
    categories: Sequence[str] | None = None,
    source_kind: str | None = None,
) -> list[Article]:
    """Return a page of articles, newest first, matching all given filters.

    ``search`` is a case-insensitive substring match on title or body.
    ``from_time`` keeps articles published at or after that instant.
    ``source_kind`` compares against the owning source's kind, ignoring case.
    Empty sequences are treated the same as None.
    """
    where: list[str] = []
    params: list = []

    if search:
        pattern = f"%{_escape_like(search)}%"
        where.append(
            "(a.title LIKE ? ESCAPE '\\' OR a.body LIKE ? ESCAPE '\\')"
        )
        params.extend([pattern, pattern])
    if from_time is not None:
        where.append("a.published_at >= ?")
        params.append(_format_ts(from_time))
    if source_ids:
        where.append(f"a.source_id IN ({', '.join('?' for _ in source_ids)})")
        params.extend(source_ids)
    if categories:
        where.append(f"a.category IN ({', '.join('?' for _ in categories)})")
        params.extend(categories)
    if source_kind:
        where.append("LOWER(s.kind) = LOWER(?)")
        params.append(source_kind)

    where_sql = f"WHERE {' AND '.join(where)}" if where else ""

    with get_connection(database_path) as conn:
        rows = conn.execute(
            "SELECT a.id, a.source_id, s.name AS source_name, s.kind AS source_kind, "
            "a.source_item_id, a.title, a.body, a.link, a.published_at, a.author, "
            "a.image_url, a.category, a.metadata, a.indexed_at "
            "FROM articles a JOIN sources s ON s.id = a.source_id "
            f"{where_sql} "
            "ORDER BY a.published_at DESC, a.id DESC "
            "LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()

    return [Article(**dict(r)) for r in rows]
