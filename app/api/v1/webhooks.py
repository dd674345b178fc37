"""Webhook configuration CRUD — all queries scoped to the calling user."""

import json
import uuid
from collections import Counter

import httpx
from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy import delete
from sqlmodel import select

from app.api.deps import Auth, Session
from app.core.config import get_settings
from app.core.security import decrypt_value, encrypt_value, generate_webhook_secret
from app.models.base import utcnow
from app.models.monitoring_rule import MonitoringRule
from app.models.webhook import (
    WebhookConfig,
    WebhookCreate,
    WebhookCreated,
    WebhookProvider,
    WebhookRead,
    WebhookStats,
    WebhookUpdate,
)
from app.models.webhook_log import WebhookLog, WebhookLogRead
from app.models.webhook_task import TaskStatus, WebhookTask, WebhookTaskRead
from app.services.signature import HMAC_HEADER, TOKEN_HEADER, sign

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

settings = get_settings()

SUPPORTED_EVENTS = frozenset({
    # GitHub
    "push",
    "pull_request",
    "pull_request_review",
    "commit_comment",
    "repository",
    "release",
    # GitLab object kinds
    "merge_request",
    "tag_push",
    "note",
    "issue",
    "pipeline",
})


def delivery_url(webhook_id: uuid.UUID) -> str:
    return f"{settings.public_base_url.rstrip('/')}/v1/hooks?webhookId={webhook_id}"


def _to_read(wh: WebhookConfig) -> WebhookRead:
    return WebhookRead(
        id=wh.id,
        user_id=wh.user_id,
        provider=wh.provider,
        repository_id=wh.repository_id,
        repository_name=wh.repository_name,
        repository_url=wh.repository_url,
        events=wh.event_list(),
        active=wh.active,
        has_secret=bool(wh.secret),
        last_triggered_at=wh.last_triggered_at,
        created_at=wh.created_at,
        updated_at=wh.updated_at,
    )


def _validate_events(events: list[str]) -> None:
    for event in events:
        if event not in SUPPORTED_EVENTS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
                detail=f"Invalid event type: {event}. Valid: {sorted(SUPPORTED_EVENTS)}",
            )


class TestPingResponse(BaseModel):
    success: bool
    status_code: int | None = None


@router.post("", response_model=WebhookCreated, status_code=status.HTTP_201_CREATED)
async def create_webhook(
    body: WebhookCreate,
    auth: Auth,
    session: Session,
) -> WebhookCreated:
    _validate_events(body.events)

    raw_secret = generate_webhook_secret()

    wh = WebhookConfig(
        user_id=auth.user_id,
        provider=body.provider,
        repository_id=body.repository_id,
        repository_name=body.repository_name,
        repository_url=body.repository_url,
        events=json.dumps(body.events),
        secret=encrypt_value(raw_secret),
        active=body.active,
    )
    session.add(wh)
    await session.commit()
    await session.refresh(wh)

    return WebhookCreated(
        **_to_read(wh).model_dump(),
        secret=raw_secret,
        delivery_url=delivery_url(wh.id),
    )


@router.get("", response_model=list[WebhookRead])
async def list_webhooks(
    auth: Auth,
    session: Session,
) -> list[WebhookRead]:
    stmt = (
        select(WebhookConfig)
        .where(WebhookConfig.user_id == auth.user_id)
        .order_by(WebhookConfig.created_at.desc())  # type: ignore[union-attr]
    )
    result = await session.execute(stmt)
    return [_to_read(wh) for wh in result.scalars().all()]


@router.get("/{webhook_id}", response_model=WebhookRead)
async def get_webhook(
    webhook_id: uuid.UUID,
    auth: Auth,
    session: Session,
) -> WebhookRead:
    wh = await get_owned_webhook(webhook_id, auth.user_id, session)
    return _to_read(wh)


@router.patch("/{webhook_id}", response_model=WebhookRead)
async def update_webhook(
    webhook_id: uuid.UUID,
    body: WebhookUpdate,
    auth: Auth,
    session: Session,
) -> WebhookRead:
    wh = await get_owned_webhook(webhook_id, auth.user_id, session)

    updates = body.model_dump(exclude_unset=True)
    if "events" in updates:
        _validate_events(updates["events"])
        updates["events"] = json.dumps(updates["events"])
    for key, value in updates.items():
        setattr(wh, key, value)
    wh.updated_at = utcnow()

    session.add(wh)
    await session.commit()
    await session.refresh(wh)
    return _to_read(wh)


@router.delete("/{webhook_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_webhook(
    webhook_id: uuid.UUID,
    auth: Auth,
    session: Session,
) -> None:
    """Delete a webhook together with its monitoring rules."""
    wh = await get_owned_webhook(webhook_id, auth.user_id, session)
    await session.execute(delete(MonitoringRule).where(MonitoringRule.webhook_id == wh.id))
    await session.delete(wh)
    await session.commit()


@router.get("/{webhook_id}/stats", response_model=WebhookStats)
async def webhook_stats(
    webhook_id: uuid.UUID,
    auth: Auth,
    session: Session,
) -> WebhookStats:
    """Delivery counts per event kind over the retained log window."""
    wh = await get_owned_webhook(webhook_id, auth.user_id, session)
    stmt = select(WebhookLog.event, WebhookLog.timestamp).where(WebhookLog.webhook_id == wh.id)
    rows = (await session.execute(stmt)).all()

    by_type = Counter(event for event, _ in rows)
    return WebhookStats(
        total_events=len(rows),
        events_by_type=dict(by_type),
        last_event_at=max((ts for _, ts in rows), default=None),
    )


@router.get("/{webhook_id}/tasks", response_model=list[WebhookTaskRead])
async def list_webhook_tasks(
    webhook_id: uuid.UUID,
    auth: Auth,
    session: Session,
    task_status: TaskStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
) -> list[WebhookTaskRead]:
    wh = await get_owned_webhook(webhook_id, auth.user_id, session)
    stmt = select(WebhookTask).where(WebhookTask.webhook_id == wh.id)
    if task_status is not None:
        stmt = stmt.where(WebhookTask.status == task_status)
    stmt = stmt.order_by(WebhookTask.created_at.desc()).limit(limit)  # type: ignore[union-attr]

    result = await session.execute(stmt)
    tasks = []
    for task in result.scalars().all():
        event = task.parsed_event()
        tasks.append(
            WebhookTaskRead(
                id=task.id,
                webhook_id=task.webhook_id,
                status=task.status,
                rule_ids=[rule.id for rule in task.parsed_rules()],
                event=event.event,
                repository=event.repository.full_name,
                created_at=task.created_at,
                started_at=task.started_at,
                completed_at=task.completed_at,
                failed_at=task.failed_at,
                error=task.error,
            )
        )
    return tasks


@router.get("/{webhook_id}/logs", response_model=list[WebhookLogRead])
async def list_webhook_logs(
    webhook_id: uuid.UUID,
    auth: Auth,
    session: Session,
    limit: int = Query(default=50, ge=1, le=200),
) -> list[WebhookLogRead]:
    """Most recent accepted deliveries, newest first."""
    wh = await get_owned_webhook(webhook_id, auth.user_id, session)
    stmt = (
        select(WebhookLog)
        .where(WebhookLog.webhook_id == wh.id)
        .order_by(WebhookLog.timestamp.desc())  # type: ignore[union-attr]
        .limit(limit)
    )
    result = await session.execute(stmt)
    return [WebhookLogRead(**log.model_dump()) for log in result.scalars().all()]


@router.post("/{webhook_id}/test", response_model=TestPingResponse)
async def test_webhook(
    webhook_id: uuid.UUID,
    auth: Auth,
    session: Session,
) -> TestPingResponse:
    """Deliver a signed sample push to this webhook's own delivery URL."""
    wh = await get_owned_webhook(webhook_id, auth.user_id, session)
    payload = _sample_payload(wh)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"No sample payload for provider {wh.provider}",
        )

    body = json.dumps(payload).encode()
    secret = decrypt_value(wh.secret)
    headers = {"Content-Type": "application/json"}
    if wh.provider == WebhookProvider.GITHUB:
        headers[HMAC_HEADER] = sign(body, secret)
    else:
        headers[TOKEN_HEADER] = secret

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.post(delivery_url(wh.id), content=body, headers=headers)
        return TestPingResponse(success=resp.is_success, status_code=resp.status_code)
    except httpx.HTTPError:
        return TestPingResponse(success=False, status_code=None)


# ── Internal helpers ──────────────────────────────────────────

def _sample_payload(wh: WebhookConfig) -> dict | None:
    if wh.provider == WebhookProvider.GITHUB:
        return {
            "ref": "refs/heads/main",
            "repository": {
                "id": wh.repository_id,
                "name": wh.repository_name,
                "full_name": wh.repository_name,
                "html_url": wh.repository_url,
            },
            "sender": {"id": 0, "login": "code-guardian-ping"},
            "commits": [],
        }
    if wh.provider == WebhookProvider.GITLAB:
        return {
            "object_kind": "push",
            "user_id": 0,
            "user_username": "code-guardian-ping",
            "project": {
                "id": wh.repository_id,
                "name": wh.repository_name,
                "path_with_namespace": wh.repository_name,
                "web_url": wh.repository_url,
            },
            "commits": [],
        }
    return None


async def get_owned_webhook(
    webhook_id: uuid.UUID,
    user_id: str,
    session,
) -> WebhookConfig:
    stmt = select(WebhookConfig).where(
        WebhookConfig.id == webhook_id,
        WebhookConfig.user_id == user_id,
    )
    result = await session.execute(stmt)
    wh = result.scalar_one_or_none()
    if wh is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Webhook not found"
        )
    return wh
