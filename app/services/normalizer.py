"""Event normalization — provider payloads into the canonical WebhookEvent."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from app.models.base import utcnow
from app.models.event import (
    CommitInfo,
    EventChanges,
    EventRepository,
    EventSender,
    FileChange,
    PullRequestInfo,
    WebhookEvent,
)
from app.models.webhook import WebhookProvider
from app.services.payloads import (
    GitHubCommit,
    GitHubPayload,
    GitLabCommit,
    GitLabMergeAttributes,
    GitLabPayload,
)

logger = logging.getLogger(__name__)


def normalize(
    raw_payload: Any,
    provider: WebhookProvider,
    *,
    now: datetime | None = None,
) -> WebhookEvent | None:
    """Map a provider payload to a WebhookEvent.

    Returns ``None`` when the payload lacks fields the mapping needs or the
    provider has no mapping, so the caller can answer 400.
    """
    mapper = _MAPPERS.get(provider)
    if mapper is None:
        logger.info("No event mapping for provider %s", provider)
        return None
    if not isinstance(raw_payload, dict):
        logger.info("Rejected %s payload: not a JSON object", provider)
        return None

    try:
        return mapper(raw_payload, now or utcnow())
    except (ValidationError, KeyError, TypeError, ValueError) as exc:
        logger.info("Rejected %s payload: %s", provider, exc)
        return None


# ── GitHub ────────────────────────────────────────────────────


def _github_event(raw: dict, now: datetime) -> WebhookEvent:
    payload = GitHubPayload.model_validate(raw)

    pull_request = None
    if payload.pull_request is not None:
        pr = payload.pull_request
        pull_request = PullRequestInfo(
            number=pr.number,
            title=pr.title,
            branch=pr.head.ref,
            base_branch=pr.base.ref,
            state=pr.state,
            url=pr.html_url,
        )

    return WebhookEvent(
        provider=WebhookProvider.GITHUB,
        event="pull_request" if pull_request is not None else "push",
        repository=EventRepository(
            id=str(payload.repository.id),
            name=payload.repository.name,
            full_name=payload.repository.full_name,
            url=payload.repository.html_url,
        ),
        sender=EventSender(
            id=str(payload.sender.id),
            username=payload.sender.login,
            avatar_url=payload.sender.avatar_url,
        ),
        changes=_changes(payload.commits),
        pull_request=pull_request,
        timestamp=now,
    )


# ── GitLab ────────────────────────────────────────────────────


def _gitlab_event(raw: dict, now: datetime) -> WebhookEvent:
    payload = GitLabPayload.model_validate(raw)
    project = payload.project
    user = payload.user or {}
    kind = payload.object_kind or "push"

    pull_request = None
    mr = None
    if kind == "merge_request" and payload.object_attributes is not None:
        try:
            mr = GitLabMergeAttributes.model_validate(payload.object_attributes)
        except ValidationError as exc:
            # Partial merge attributes still yield an event, just without PR info
            logger.info("Ignoring incomplete merge request attributes: %s", exc)
    if mr is not None:
        pull_request = PullRequestInfo(
            number=mr.iid,
            title=mr.title,
            branch=mr.source_branch,
            base_branch=mr.target_branch,
            state=mr.state,
            url=mr.url,
        )

    sender_id = payload.user_id if payload.user_id is not None else user.get("id")
    return WebhookEvent(
        provider=WebhookProvider.GITLAB,
        event=kind,
        repository=EventRepository(
            id=_str_or_empty(project.id if project else None),
            name=(project.name if project else None) or "",
            full_name=(project.path_with_namespace if project else None) or "",
            url=(project.web_url if project else None) or "",
        ),
        sender=EventSender(
            id=_str_or_empty(sender_id),
            username=payload.user_username or user.get("username") or "",
            avatar_url=payload.user_avatar or user.get("avatar_url") or "",
        ),
        changes=_changes(payload.commits),
        pull_request=pull_request,
        timestamp=now,
    )


# ── Shared helpers ────────────────────────────────────────────


def _changes(commits: list[GitHubCommit] | list[GitLabCommit] | None) -> EventChanges | None:
    """Flatten per-commit file lists.

    Every file is tagged "modified": the aggregate does not keep the
    per-commit added/removed distinction.
    """
    if commits is None:
        return None

    files = [
        FileChange(filename=name)
        for commit in commits
        for name in [*commit.added, *commit.modified, *commit.removed]
    ]
    commit_infos = [
        CommitInfo(
            id=commit.id,
            message=commit.message,
            author=commit.author.name,
            timestamp=_epoch_ms(commit.timestamp),
        )
        for commit in commits
    ]
    return EventChanges(files=files, commits=commit_infos)


def _epoch_ms(value: str | None) -> int | None:
    """ISO-8601 string to epoch milliseconds; unparseable values become None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable commit timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _str_or_empty(value: Any) -> str:
    return "" if value is None else str(value)


_MAPPERS: dict[WebhookProvider, Callable[[dict, datetime], WebhookEvent]] = {
    WebhookProvider.GITHUB: _github_event,
    WebhookProvider.GITLAB: _gitlab_event,
}
