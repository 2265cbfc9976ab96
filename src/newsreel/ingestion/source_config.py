"""Per-kind source configuration models.

A source's config is stored as an opaque JSON document. Each adapter declares
the pydantic model its config must satisfy; decoding happens once, at the
registry boundary, into one of the typed variants below.
"""

from __future__ import annotations

from typing import TypeVar, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

VALID_SORT_TYPES = ("hot", "new", "top")
DEFAULT_SORT_TYPE = "hot"


class ConfigurationError(ValueError):
    """A source cannot be polled because of how it is configured."""


class _SourceConfigBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    # 0 means "use the global default"; see parse_source_config
    limit: int = Field(0, ge=0)


class RssConfig(_SourceConfigBase):
    url: str
    category: str | None = None

    @field_validator("url")
    @classmethod
    def _normalize_url(cls, value: str) -> str:
        if not value:
            raise ValueError("url is required")
        if "://" not in value:
            value = f"https://{value}"
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"not a valid feed URL: {value!r}")
        return value


class GitHubConfig(_SourceConfigBase):
    repository_owner: str = Field(min_length=1)
    repository_name: str = Field(min_length=1)
    token: str | None = None
    event_types: list[str] = Field(default_factory=list)

    @field_validator("event_types", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value


class RedditConfig(_SourceConfigBase):
    subreddit: str = Field(min_length=1)
    sort_type: str = DEFAULT_SORT_TYPE
    category: str | None = None

    @field_validator("subreddit")
    @classmethod
    def _strip_prefix(cls, value: str) -> str:
        for prefix in ("/r/", "r/"):
            if value.lower().startswith(prefix):
                value = value[len(prefix):]
        value = value.strip("/")
        if not value:
            raise ValueError("subreddit is required")
        return value

    @field_validator("sort_type", mode="before")
    @classmethod
    def _normalize_sort(cls, value) -> str:
        value = (value or "").strip().lower() if isinstance(value, str) else ""
        return value if value in VALID_SORT_TYPES else DEFAULT_SORT_TYPE


SourceConfig = Union[RssConfig, GitHubConfig, RedditConfig]

_ConfigT = TypeVar("_ConfigT", bound=_SourceConfigBase)


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
        for err in exc.errors()
    )


def validate_source_config(model: type[_ConfigT], data: dict) -> _ConfigT:
    """Validate a config mapping against ``model``.

    Raises ConfigurationError with a readable description of every problem.
    """
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc


def parse_source_config(
    model: type[_ConfigT], raw_json: str, default_limit: int
) -> _ConfigT:
    """Decode a stored config document into ``model``.

    A limit of 0 (or an absent limit) is replaced by ``default_limit``.
    Raises ConfigurationError if the document is not valid JSON or does not
    satisfy the model.
    """
    try:
        config = model.model_validate_json(raw_json)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc
    if config.limit == 0:
        config = config.model_copy(update={"limit": default_limit})
    return config
