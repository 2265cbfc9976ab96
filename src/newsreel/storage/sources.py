"""Source records — CRUD and per-poll bookkeeping."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from newsreel.storage.connection import get_connection

logger = logging.getLogger(__name__)

_SOURCE_COLUMNS = (
    "id, name, kind, config, active, created_at, "
    "last_polled_at, last_error_at, last_error"
)


@dataclass(frozen=True)
class Source:
    """A configured content source."""

    id: int
    name: str
    kind: str
    config: str  # JSON document, validated by the kind's adapter
    active: bool
    created_at: str
    last_polled_at: str | None = None
    last_error_at: str | None = None
    last_error: str | None = None


@dataclass(frozen=True)
class PollOutcome:
    """Bookkeeping for one source after one poll attempt.

    Exactly one of ``polled_at`` or ``error_at`` is normally set. Fields left
    as None are not written, so an earlier error survives a later success.
    """

    source_id: int
    polled_at: datetime | None = None
    error_at: datetime | None = None
    error: str | None = None


def _row_to_source(row: sqlite3.Row) -> Source:
    return Source(
        id=row["id"],
        name=row["name"],
        kind=row["kind"],
        config=row["config"],
        active=bool(row["active"]),
        created_at=row["created_at"],
        last_polled_at=row["last_polled_at"],
        last_error_at=row["last_error_at"],
        last_error=row["last_error"],
    )


def get_source(database_path: str, source_id: int) -> Source | None:
    with get_connection(database_path) as conn:
        row = conn.execute(
            f"SELECT {_SOURCE_COLUMNS} FROM sources WHERE id = ?", (source_id,)
        ).fetchone()
    return _row_to_source(row) if row else None


def list_sources(database_path: str) -> list[Source]:
    with get_connection(database_path) as conn:
        rows = conn.execute(
            f"SELECT {_SOURCE_COLUMNS} FROM sources ORDER BY id"
        ).fetchall()
    return [_row_to_source(r) for r in rows]


def list_active_sources(database_path: str) -> list[Source]:
    """Return all sources eligible for polling, in id order."""
    with get_connection(database_path) as conn:
        rows = conn.execute(
            f"SELECT {_SOURCE_COLUMNS} FROM sources WHERE active = 1 ORDER BY id"
        ).fetchall()
    return [_row_to_source(r) for r in rows]


def create_source(
    database_path: str, name: str, kind: str, config: str, active: bool = True
) -> Source:
    """Insert a new source and return it. ``kind`` is stored lower-cased."""
    now = datetime.now(timezone.utc).isoformat()
    with get_connection(database_path) as conn:
        cursor = conn.execute(
            "INSERT INTO sources (name, kind, config, active, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (name, kind.lower(), config, int(active), now),
        )
        source_id = cursor.lastrowid
    logger.info("Created source %d (%s, %s)", source_id, name, kind)
    return Source(
        id=source_id,
        name=name,
        kind=kind.lower(),
        config=config,
        active=active,
        created_at=now,
    )


def update_source(
    database_path: str,
    source_id: int,
    name: str,
    kind: str,
    config: str,
    active: bool,
) -> Source | None:
    """Replace a source's editable fields. Returns None if it does not exist."""
    with get_connection(database_path) as conn:
        cursor = conn.execute(
            "UPDATE sources SET name = ?, kind = ?, config = ?, active = ? "
            "WHERE id = ?",
            (name, kind.lower(), config, int(active), source_id),
        )
        if cursor.rowcount == 0:
            return None
    logger.info("Updated source %d", source_id)
    return get_source(database_path, source_id)


def delete_source(database_path: str, source_id: int) -> bool:
    """Delete a source and, by cascade, its articles. Returns False if absent."""
    with get_connection(database_path) as conn:
        cursor = conn.execute("DELETE FROM sources WHERE id = ?", (source_id,))
        deleted = cursor.rowcount > 0
    if deleted:
        logger.info("Deleted source %d", source_id)
    return deleted


def record_poll_outcomes(database_path: str, outcomes: Iterable[PollOutcome]) -> None:
    """Write the bookkeeping of a whole run in a single transaction."""
    outcomes = list(outcomes)
    if not outcomes:
        return
    with get_connection(database_path, immediate=True) as conn:
        for outcome in outcomes:
            if outcome.polled_at is not None:
                conn.execute(
                    "UPDATE sources SET last_polled_at = ? WHERE id = ?",
                    (outcome.polled_at.isoformat(), outcome.source_id),
                )
            if outcome.error_at is not None:
                conn.execute(
                    "UPDATE sources SET last_error_at = ?, last_error = ? WHERE id = ?",
                    (outcome.error_at.isoformat(), outcome.error, outcome.source_id),
                )
    logger.debug("Recorded poll outcomes for %d source(s)", len(outcomes))
