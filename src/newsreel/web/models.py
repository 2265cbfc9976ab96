"""Pydantic v2 request and response models for the Newsreel web API."""

from __future__ import annotations

import json

from pydantic import BaseModel, Field

REDACTED_TOKEN = "***"


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------
class ArticleResponse(BaseModel):
    id: int
    source_id: int
    source_name: str
    source_kind: str
    source_item_id: str
    title: str
    body: str
    link: str
    published_at: str
    author: str | None = None
    image_url: str | None = None
    category: str | None = None
    metadata: str | None = None
    indexed_at: str


class ArticleListResponse(BaseModel):
    articles: list[ArticleResponse]
    offset: int
    limit: int


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------
class SourceRequest(BaseModel):
    name: str = Field(min_length=1)
    kind: str = Field(min_length=1)
    config: dict
    active: bool = True


class SourceResponse(BaseModel):
    id: int
    name: str
    kind: str
    config: dict
    active: bool
    created_at: str
    last_polled_at: str | None = None
    last_error_at: str | None = None
    last_error: str | None = None

    @classmethod
    def from_source(cls, source) -> "SourceResponse":
        """Build a response from a storage Source, redacting credentials."""
        config = json.loads(source.config)
        if isinstance(config, dict) and config.get("token"):
            config["token"] = REDACTED_TOKEN
        return cls(
            id=source.id,
            name=source.name,
            kind=source.kind,
            config=config if isinstance(config, dict) else {},
            active=source.active,
            created_at=source.created_at,
            last_polled_at=source.last_polled_at,
            last_error_at=source.last_error_at,
            last_error=source.last_error,
        )


class SourceListResponse(BaseModel):
    sources: list[SourceResponse]


# ---------------------------------------------------------------------------
# Aggregation runs
# ---------------------------------------------------------------------------
class AggregationRun(BaseModel):
    id: int
    started_at: str
    finished_at: str
    status: str
    source_id: int | None = None
    result: dict


class AggregationRunListResponse(BaseModel):
    runs: list[AggregationRun]
    total: int
    page: int
    per_page: int
    pages: int
