"""Inbound webhook ingestion: authenticate, normalize, log, match, stage a task."""

import json
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.exceptions import (
    InvalidPayload,
    SignatureInvalid,
    SignatureMissing,
    WebhookInactive,
    WebhookNotFound,
)
from app.core.security import decrypt_value
from app.models.base import utcnow
from app.models.monitoring_rule import MonitoringRule, RuleSnapshot
from app.models.webhook import WebhookConfig
from app.models.webhook_log import WebhookLog
from app.services.normalizer import normalize
from app.services.rules import match_rules
from app.services.signature import extract_signature, verify_signature
from app.services.task_lifecycle import create_task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    webhook_id: uuid.UUID
    event: str
    rules_triggered: int
    task_id: uuid.UUID | None = None


async def load_webhook(session: AsyncSession, webhook_id: str) -> WebhookConfig:
    try:
        key = uuid.UUID(webhook_id)
    except ValueError as exc:
        raise WebhookNotFound() from exc
    webhook = await session.get(WebhookConfig, key)
    if webhook is None:
        raise WebhookNotFound()
    return webhook


async def load_enabled_rules(session: AsyncSession, webhook_id: uuid.UUID) -> list[RuleSnapshot]:
    stmt = (
        select(MonitoringRule)
        .where(
            MonitoringRule.webhook_id == webhook_id,
            MonitoringRule.enabled == True,  # noqa: E712
        )
        .order_by(MonitoringRule.created_at.asc())  # type: ignore[union-attr]
    )
    result = await session.execute(stmt)
    return [rule.snapshot() for rule in result.scalars().all()]


async def ingest_event(
    session: AsyncSession,
    webhook_id: str,
    headers: Mapping[str, str],
    raw_body: bytes,
    *,
    now: datetime | None = None,
) -> IngestResult:
    """Process one delivery up to (and including) staging its task.

    Raises an ``IngestError`` subclass for every rejected delivery. The log
    entry, ``last_triggered_at`` and the task are committed together.
    """
    webhook = await load_webhook(session, webhook_id)
    if not webhook.active:
        raise WebhookInactive()

    signature = extract_signature(headers)
    if signature is None:
        raise SignatureMissing()
    if not verify_signature(signature, raw_body, decrypt_value(webhook.secret)):
        logger.warning("Invalid %s signature for webhook %s", signature.mode, webhook.id)
        raise SignatureInvalid()

    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise InvalidPayload() from exc

    now = now or utcnow()
    event = normalize(payload, webhook.provider, now=now)
    if event is None:
        raise InvalidPayload()

    session.add(
        WebhookLog(
            webhook_id=webhook.id,
            event=event.event,
            repository=event.repository.name,
            sender=event.sender.username,
            timestamp=now,
            processed=True,
        )
    )
    webhook.last_triggered_at = now
    session.add(webhook)

    matched = match_rules(await load_enabled_rules(session, webhook.id), event)
    task = create_task(session, webhook.id, event, matched, now=now) if matched else None
    await session.commit()

    logger.info(
        "Accepted %s %s event for %s: %d rule(s) triggered",
        webhook.provider, event.event, event.repository.full_name, len(matched),
    )
    return IngestResult(
        webhook_id=webhook.id,
        event=event.event,
        rules_triggered=len(matched),
        task_id=task.id if task is not None else None,
    )
