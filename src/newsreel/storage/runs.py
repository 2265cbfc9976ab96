"""Aggregation run history."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from newsreel.storage.connection import get_connection


def record_run(
    database_path: str,
    started_at: str,
    result: dict,
    cancelled: bool = False,
    source_id: int | None = None,
) -> None:
    """Insert an aggregation run record into the aggregation_runs table."""
    finished_at = datetime.now(timezone.utc).isoformat()
    with get_connection(database_path) as conn:
        conn.execute(
            "INSERT INTO aggregation_runs "
            "(started_at, finished_at, status, source_id, result) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                started_at,
                finished_at,
                "cancelled" if cancelled else "success",
                source_id,
                json.dumps(result),
            ),
        )


def list_runs(
    database_path: str, page: int = 1, per_page: int = 20
) -> tuple[list[dict], int]:
    """Return a page of runs (newest first) and the total run count."""
    offset = (page - 1) * per_page
    with get_connection(database_path) as conn:
        total = conn.execute("SELECT COUNT(*) AS cnt FROM aggregation_runs").fetchone()["cnt"]
        rows = conn.execute(
            "SELECT id, started_at, finished_at, status, source_id, result "
            "FROM aggregation_runs ORDER BY started_at DESC, id DESC "
            "LIMIT ? OFFSET ?",
            (per_page, offset),
        ).fetchall()

    runs = []
    for row in rows:
        run = dict(row)
        run["result"] = json.loads(run["result"])
        runs.append(run)
    return runs, total
