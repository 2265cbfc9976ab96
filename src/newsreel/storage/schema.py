"""Database schema definition and initialization."""

from __future__ import annotations

import logging

from newsreel.storage.connection import get_connection

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
-- Configured content sources
CREATE TABLE IF NOT EXISTS sources (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL,
    kind            TEXT NOT NULL,
    config          TEXT NOT NULL,              -- JSON object, shape depends on kind
    active          INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL,
    last_polled_at  TEXT,
    last_error_at   TEXT,
    last_error      TEXT
);

-- Normalized articles, one per (source, provider item id)
CREATE TABLE IF NOT EXISTS articles (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    source_id       INTEGER NOT NULL REFERENCES sources(id) ON DELETE CASCADE,
    source_item_id  TEXT NOT NULL,
    title           TEXT NOT NULL,
    body            TEXT NOT NULL DEFAULT '',
    link            TEXT NOT NULL DEFAULT '',
    published_at    TEXT NOT NULL,
    author          TEXT,
    image_url       TEXT,
    category        TEXT,
    metadata        TEXT,                       -- opaque JSON, adapter-defined
    indexed_at      TEXT NOT NULL
);

-- Aggregation run tracking
CREATE TABLE IF NOT EXISTS aggregation_runs (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at  TEXT NOT NULL,
    finished_at TEXT NOT NULL,
    status      TEXT NOT NULL CHECK (status IN ('success', 'cancelled')),
    source_id   INTEGER,
    result      TEXT NOT NULL                   -- JSON object
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_articles_source_item
    ON articles(source_id, source_item_id);
CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles(published_at);
CREATE INDEX IF NOT EXISTS idx_articles_category ON articles(category);
CREATE INDEX IF NOT EXISTS idx_sources_active ON sources(active);
CREATE INDEX IF NOT EXISTS idx_aggregation_runs_started_at ON aggregation_runs(started_at);
"""


def init_db(database_path: str) -> None:
    """Create all tables and indexes if they do not already exist."""
    with get_connection(database_path) as conn:
        conn.executescript(_SCHEMA_SQL)
    logger.info("Database initialized at %s", database_path)
