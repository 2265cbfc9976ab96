"""API route handlers for the Newsreel web API."""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from newsreel.config import Config
from newsreel.ingestion.registry import get_adapter_class, registered_types
from newsreel.ingestion.source_config import ConfigurationError, validate_source_config
from newsreel.jobs import run_aggregation
from newsreel.storage.articles import query_latest
from newsreel.storage.connection import get_connection
from newsreel.storage.runs import list_runs
from newsreel.storage.sources import (
    create_source,
    delete_source,
    get_source,
    list_sources,
    update_source,
)
from newsreel.web.models import (
    REDACTED_TOKEN,
    AggregationRunListResponse,
    ArticleListResponse,
    ArticleResponse,
    SourceListResponse,
    SourceRequest,
    SourceResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter()

_PERIODS = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


@health_router.get("/health")
def health(request: Request) -> JSONResponse:
    """Check database connectivity and return health status."""
    database_path = request.app.state.database_path
    try:
        with get_connection(database_path) as conn:
            conn.execute("SELECT 1")
        return JSONResponse({"status": "healthy", "database": "ok"})
    except (sqlite3.Error, OSError) as exc:
        logger.warning("Health check failed: %s", exc)
        return JSONResponse(
            {"status": "unhealthy", "database": "error", "detail": str(exc)},
            status_code=503,
        )


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------
@router.get("/news", response_model=ArticleListResponse)
def news(
    request: Request,
    offset: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    q: str | None = None,
    period: str | None = None,
    sources: list[int] | None = Query(None),
    categories: list[str] | None = Query(None),
    source_kind: str | None = None,
) -> ArticleListResponse:
    database_path = request.app.state.database_path

    from_time = None
    if period is not None:
        window = _PERIODS.get(period.lower())
        if window is not None:
            from_time = datetime.now(timezone.utc) - window

    articles = query_latest(
        database_path,
        limit=limit,
        offset=offset,
        search=q or None,
        from_time=from_time,
        source_ids=sources,
        categories=categories,
        source_kind=source_kind,
    )
    return ArticleListResponse(
        articles=[ArticleResponse(**vars(a)) for a in articles],
        offset=offset,
        limit=limit,
    )


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------
def _trigger_poll(config: Config, source_id: int) -> None:
    """Poll a single source right after it was created or edited. Never raises."""
    try:
        run_aggregation(config, source_id)
    except Exception:
        logger.exception("Immediate poll of source %d failed", source_id)


def _validated_config_json(body: SourceRequest, previous_config: str | None = None) -> str:
    """Validate ``body.config`` against its kind's model and return it normalized.

    A redacted token echoed back by a client keeps the previously stored one;
    with no stored token to restore, the placeholder is dropped.
    Raises HTTPException(400) on an unknown kind or invalid config.
    """
    adapter_cls = get_adapter_class(body.kind)
    if adapter_cls is None:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Unknown source kind {body.kind!r}; "
                f"expected one of: {', '.join(registered_types())}"
            ),
        )

    data = dict(body.config)
    if data.get("token") == REDACTED_TOKEN:
        stored = json.loads(previous_config).get("token") if previous_config else None
        if stored:
            data["token"] = stored
        else:
            data.pop("token")

    try:
        parsed = validate_source_config(adapter_cls.config_model, data)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid config: {exc}") from exc
    return parsed.model_dump_json(by_alias=True, exclude_none=True)


@router.get("/sources", response_model=SourceListResponse)
def sources_index(request: Request) -> SourceListResponse:
    rows = list_sources(request.app.state.database_path)
    return SourceListResponse(sources=[SourceResponse.from_source(s) for s in rows])


@router.get("/sources/{source_id}", response_model=SourceResponse)
def source_by_id(request: Request, source_id: int) -> SourceResponse:
    source = get_source(request.app.state.database_path, source_id)
    if source is None:
        raise HTTPException(status_code=404, detail="Source not found")
    return SourceResponse.from_source(source)


@router.post("/sources", response_model=SourceResponse, status_code=201)
def source_create(
    request: Request, body: SourceRequest, background_tasks: BackgroundTasks
) -> SourceResponse:
    config_json = _validated_config_json(body)
    source = create_source(
        request.app.state.database_path,
        name=body.name,
        kind=body.kind,
        config=config_json,
        active=body.active,
    )
    if source.active:
        background_tasks.add_task(_trigger_poll, request.app.state.config, source.id)
    return SourceResponse.from_source(source)


@router.put("/sources/{source_id}", response_model=SourceResponse)
def source_update(
    request: Request,
    source_id: int,
    body: SourceRequest,
    background_tasks: BackgroundTasks,
) -> SourceResponse:
    database_path = request.app.state.database_path
    existing = get_source(database_path, source_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Source not found")

    config_json = _validated_config_json(body, previous_config=existing.config)
    source = update_source(
        database_path,
        source_id,
        name=body.name,
        kind=body.kind,
        config=config_json,
        active=body.active,
    )
    if source is None:
        raise HTTPException(status_code=404, detail="Source not found")
    if source.active:
        background_tasks.add_task(_trigger_poll, request.app.state.config, source.id)
    return SourceResponse.from_source(source)


@router.delete("/sources/{source_id}", status_code=204)
def source_delete(request: Request, source_id: int) -> Response:
    if not delete_source(request.app.state.database_path, source_id):
        raise HTTPException(status_code=404, detail="Source not found")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Aggregation runs
# ---------------------------------------------------------------------------
@router.get("/runs", response_model=AggregationRunListResponse)
def runs(
    request: Request,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
) -> AggregationRunListResponse:
    database_path = request.app.state.database_path
    rows, total = list_runs(database_path, page=page, per_page=per_page)
    pages = math.ceil(total / per_page) if total else 0
    return AggregationRunListResponse(
        runs=rows,
        total=total,
        page=page,
        per_page=per_page,
        pages=pages,
    )
