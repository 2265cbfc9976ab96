"""GitHub repository events source adapter — polls the public events API."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Callable

from newsreel.ingestion.adapter import SourceAdapter
from newsreel.ingestion.normalize import (
    ArticleCandidate,
    fallback_item_id,
    to_utc,
    utc_now,
)
from newsreel.ingestion.source_config import GitHubConfig

logger = logging.getLogger(__name__)

_GITHUB_EVENTS_URL = "https://api.github.com/repos/{owner}/{repo}/events"
_GITHUB_ACCEPT = "application/vnd.github+json"
_MAX_PER_PAGE = 100


def _parse_created_at(raw: str | None) -> datetime:
    if raw:
        try:
            return to_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            pass
    return utc_now()


# Each describer returns (title, description, link) for one event type.
# ``ctx`` carries the fields shared by every event: actor, repo, repo_url.
_Describer = Callable[[dict, dict], tuple[str, str, str]]


def _describe_push(payload: dict, ctx: dict) -> tuple[str, str, str]:
    commits = payload.get("commits") or []
    count = payload.get("size", len(commits))
    noun = "commit" if count == 1 else "commits"
    description = f"{ctx['actor']} pushed {count} {noun} to {ctx['repo']}"
    link = ctx["repo_url"]
    if commits:
        first = commits[0]
        message = (first.get("message") or "").strip()
        if message:
            description = f"{message}\n\n{description}"
        if first.get("sha"):
            link = f"{ctx['repo_url']}/commit/{first['sha']}"
    return f"Push to {ctx['repo']}", description, link


def _describe_issue(payload: dict, ctx: dict) -> tuple[str, str, str]:
    issue = payload.get("issue") or {}
    return (
        f"Issue: {issue.get('title', '')}",
        issue.get("body") or f"Issue event in {ctx['repo']}",
        issue.get("html_url") or ctx["repo_url"],
    )


def _describe_pull_request(payload: dict, ctx: dict) -> tuple[str, str, str]:
    pr = payload.get("pull_request") or {}
    return (
        f"Pull Request: {pr.get('title', '')}",
        pr.get("body") or f"Pull request event in {ctx['repo']}",
        pr.get("html_url") or ctx["repo_url"],
    )


def _describe_create(payload: dict, ctx: dict) -> tuple[str, str, str]:
    ref_type = payload.get("ref_type", "ref")
    return (
        f"Created {ref_type} in {ctx['repo']}",
        f"{ctx['actor']} created {ref_type} in {ctx['repo']}",
        ctx["repo_url"],
    )


def _describe_delete(payload: dict, ctx: dict) -> tuple[str, str, str]:
    ref_type = payload.get("ref_type", "ref")
    return (
        f"Deleted {ref_type} from {ctx['repo']}",
        f"{ctx['actor']} deleted {ref_type} from {ctx['repo']}",
        ctx["repo_url"],
    )


def _describe_release(payload: dict, ctx: dict) -> tuple[str, str, str]:
    release = payload.get("release") or {}
    name = release.get("name") or release.get("tag_name") or ""
    return (
        f"Release: {name}",
        release.get("body") or f"Release event in {ctx['repo']}",
        release.get("html_url") or f"{ctx['repo_url']}/releases",
    )


_DESCRIBERS: dict[str, _Describer] = {
    "PushEvent": _describe_push,
    "IssuesEvent": _describe_issue,
    "PullRequestEvent": _describe_pull_request,
    "CreateEvent": _describe_create,
    "DeleteEvent": _describe_delete,
    "ReleaseEvent": _describe_release,
}


def _describe_other(event_type: str, ctx: dict) -> tuple[str, str, str]:
    return (
        f"{event_type} in {ctx['repo']}",
        f"{ctx['actor']} performed {event_type} in {ctx['repo']}",
        ctx["repo_url"],
    )


def _event_metadata(event_type: str, payload: dict) -> str:
    sha = None
    if event_type == "PushEvent":
        commits = payload.get("commits") or []
        sha = commits[0].get("sha") if commits else payload.get("head")
    pr_number = None
    if event_type == "PullRequestEvent":
        pr_number = payload.get("number") or (payload.get("pull_request") or {}).get("number")
    return json.dumps({"github_type": event_type, "sha": sha, "pr_number": pr_number})


class GitHubEventsAdapter(SourceAdapter):
    """Adapter for a single repository's public event stream."""

    config_model = GitHubConfig

    @property
    def name(self) -> str:
        return "github"

    def fetch(self, config: GitHubConfig) -> list[ArticleCandidate]:
        owner, repo = config.repository_owner, config.repository_name
        allowed = {t.lower() for t in config.event_types}

        # Filtering happens client-side, so ask for a full page when filtering.
        per_page = _MAX_PER_PAGE if allowed else min(config.limit, _MAX_PER_PAGE)

        headers = {"Accept": _GITHUB_ACCEPT}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"

        resp = self._client.get(
            _GITHUB_EVENTS_URL.format(owner=owner, repo=repo),
            params={"per_page": per_page},
            headers=headers,
        )
        resp.raise_for_status()
        events = resp.json()
        if not isinstance(events, list):
            raise ValueError(f"Unexpected GitHub events payload for {owner}/{repo}")

        if allowed:
            events = [e for e in events if (e.get("type") or "").lower() in allowed]
        events = events[: config.limit]

        repo_url = f"https://github.com/{owner}/{repo}"
        items = [self._to_candidate(event, owner, repo, repo_url) for event in events]
        logger.info("Fetched %d events from GitHub %s/%s", len(items), owner, repo)
        return items

    def _to_candidate(
        self, event: dict, owner: str, repo: str, repo_url: str
    ) -> ArticleCandidate:
        event_type = event.get("type") or "Event"
        actor = event.get("actor") or {}
        payload = event.get("payload") or {}
        ctx = {
            "actor": actor.get("login", "someone"),
            "repo": (event.get("repo") or {}).get("name") or f"{owner}/{repo}",
            "repo_url": repo_url,
        }

        describer = _DESCRIBERS.get(event_type)
        if describer is not None:
            title, description, link = describer(payload, ctx)
        else:
            title, description, link = _describe_other(event_type, ctx)

        return ArticleCandidate(
            source_item_id=str(event["id"]) if event.get("id") else fallback_item_id(),
            title=title,
            body=description,
            link=link,
            published_at=_parse_created_at(event.get("created_at")),
            author=actor.get("login"),
            image_url=actor.get("avatar_url"),
            category=event_type,
            metadata=_event_metadata(event_type, payload),
        )
