"""Scheduled job functions — aggregation across all configured sources."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone

import httpx

import newsreel.ingestion  # noqa: F401  (registers adapters)
from newsreel.config import Config
from newsreel.ingestion.registry import UnknownSourceKindError, resolve_adapter
from newsreel.ingestion.source_config import ConfigurationError, parse_source_config
from newsreel.storage.articles import save_new
from newsreel.storage.runs import record_run
from newsreel.storage.sources import (
    PollOutcome,
    Source,
    get_source,
    list_active_sources,
    record_poll_outcomes,
)

logger = logging.getLogger(__name__)

# Held for the whole of a run; scheduled ticks and manual triggers share it.
_RUN_LOCK = threading.Lock()


def _error_text(exc: BaseException) -> str:
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


def _select_sources(config: Config, source_id: int | None) -> list[Source]:
    if source_id is None:
        return list_active_sources(config.database_path)
    source = get_source(config.database_path, source_id)
    if source is None:
        logger.warning("Source %d not found; nothing to aggregate", source_id)
        return []
    if not source.active:
        logger.info("Source %d is inactive; skipping", source_id)
        return []
    return [source]


def _build_client(config: Config) -> httpx.Client:
    return httpx.Client(
        timeout=config.http_timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
    )


def run_aggregation(
    config: Config,
    source_id: int | None = None,
    *,
    cancel_event: threading.Event | None = None,
    client: httpx.Client | None = None,
) -> dict | None:
    """Poll active sources (or just ``source_id``) and persist new articles.

    Sources are processed one at a time. A failing source is recorded and
    skipped; it never aborts the run. ``cancel_event`` is checked between
    sources. Per-source bookkeeping is committed once, after the loop.

    Returns a dict of run counters, or None when another run is already in
    progress. Storage errors propagate.
    """
    if not _RUN_LOCK.acquire(blocking=False):
        logger.warning("Aggregation already in progress; skipping this trigger")
        return None
    try:
        own_client = client is None
        if own_client:
            client = _build_client(config)
        try:
            return _aggregate(config, source_id, cancel_event, client)
        finally:
            if own_client:
                client.close()
    finally:
        _RUN_LOCK.release()


def _aggregate(
    config: Config,
    source_id: int | None,
    cancel_event: threading.Event | None,
    client: httpx.Client,
) -> dict:
    started_at = datetime.now(timezone.utc).isoformat()
    sources = _select_sources(config, source_id)

    outcomes: list[PollOutcome] = []
    result = {
        "sources": len(sources),
        "polled": 0,
        "failed": 0,
        "skipped": 0,
        "items_fetched": 0,
        "items_new": 0,
    }
    cancelled = False

    for source in sources:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Aggregation cancelled before source %d", source.id)
            cancelled = True
            break

        try:
            adapter_cls = resolve_adapter(source.kind)
        except UnknownSourceKindError:
            logger.warning(
                "Skipping source %d (%s): unknown kind %r",
                source.id, source.name, source.kind,
            )
            result["skipped"] += 1
            continue

        try:
            source_config = parse_source_config(
                adapter_cls.config_model, source.config, config.news_limit_per_source
            )
        except ConfigurationError as exc:
            logger.error(
                "Skipping source %d (%s): invalid config: %s", source.id, source.name, exc
            )
            outcomes.append(
                PollOutcome(
                    source_id=source.id,
                    error_at=datetime.now(timezone.utc),
                    error=_error_text(exc),
                )
            )
            result["failed"] += 1
            continue

        adapter = adapter_cls(client)
        try:
            candidates = adapter.fetch(source_config)
        except Exception as exc:
            logger.exception("Failed to fetch source %d (%s)", source.id, source.name)
            outcomes.append(
                PollOutcome(
                    source_id=source.id,
                    error_at=datetime.now(timezone.utc),
                    error=_error_text(exc),
                )
            )
            result["failed"] += 1
            continue

        stamped = [replace(c, source_id=source.id) for c in candidates]
        if stamped:
            result["items_new"] += save_new(config.database_path, stamped)
        result["items_fetched"] += len(stamped)
        result["polled"] += 1
        outcomes.append(
            PollOutcome(source_id=source.id, polled_at=datetime.now(timezone.utc))
        )

    record_poll_outcomes(config.database_path, outcomes)
    record_run(
        config.database_path,
        started_at,
        result,
        cancelled=cancelled,
        source_id=source_id,
    )

    logger.info(
        "Aggregation %s: %d source(s), %d polled, %d failed, %d skipped, "
        "%d fetched, %d new",
        "cancelled" if cancelled else "complete",
        result["sources"],
        result["polled"],
        result["failed"],
        result["skipped"],
        result["items_fetched"],
        result["items_new"],
    )
    return {**result, "cancelled": cancelled}
