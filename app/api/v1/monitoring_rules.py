"""Monitoring rule CRUD — rules belong to one of the caller's webhooks."""

import uuid

from fastapi import APIRouter, HTTPException, Query, status
from sqlmodel import select

from app.api.deps import Auth, Session
from app.api.v1.webhooks import get_owned_webhook
from app.models.base import utcnow
from app.models.monitoring_rule import (
    MonitoringRule,
    MonitoringRuleCreate,
    MonitoringRuleRead,
    MonitoringRuleUpdate,
)

router = APIRouter(prefix="/monitoring-rules", tags=["monitoring-rules"])


def _to_read(rule: MonitoringRule) -> MonitoringRuleRead:
    return MonitoringRuleRead(
        id=rule.id,
        user_id=rule.user_id,
        webhook_id=rule.webhook_id,
        name=rule.name,
        description=rule.description,
        conditions=rule.parsed_conditions(),
        actions=rule.parsed_actions(),
        enabled=rule.enabled,
        created_at=rule.created_at,
        updated_at=rule.updated_at,
    )


@router.post("", response_model=MonitoringRuleRead, status_code=status.HTTP_201_CREATED)
async def create_rule(
    body: MonitoringRuleCreate,
    auth: Auth,
    session: Session,
) -> MonitoringRuleRead:
    await get_owned_webhook(body.webhook_id, auth.user_id, session)

    rule = MonitoringRule(
        user_id=auth.user_id,
        webhook_id=body.webhook_id,
        name=body.name,
        description=body.description,
        conditions=body.conditions.model_dump_json(),
        actions=body.actions.model_dump_json(),
        enabled=body.enabled,
    )
    session.add(rule)
    await session.commit()
    await session.refresh(rule)
    return _to_read(rule)


@router.get("", response_model=list[MonitoringRuleRead])
async def list_rules(
    auth: Auth,
    session: Session,
    webhook_id: uuid.UUID | None = Query(default=None),
) -> list[MonitoringRuleRead]:
    stmt = select(MonitoringRule).where(MonitoringRule.user_id == auth.user_id)
    if webhook_id is not None:
        stmt = stmt.where(MonitoringRule.webhook_id == webhook_id)
    stmt = stmt.order_by(MonitoringRule.created_at.asc())  # type: ignore[union-attr]

    result = await session.execute(stmt)
    return [_to_read(rule) for rule in result.scalars().all()]


@router.get("/{rule_id}", response_model=MonitoringRuleRead)
async def get_rule(
    rule_id: uuid.UUID,
    auth: Auth,
    session: Session,
) -> MonitoringRuleRead:
    rule = await _get_or_404(rule_id, auth.user_id, session)
    return _to_read(rule)


@router.patch("/{rule_id}", response_model=MonitoringRuleRead)
async def update_rule(
    rule_id: uuid.UUID,
    body: MonitoringRuleUpdate,
    auth: Auth,
    session: Session,
) -> MonitoringRuleRead:
    rule = await _get_or_404(rule_id, auth.user_id, session)

    if body.name is not None:
        rule.name = body.name
    if body.description is not None:
        rule.description = body.description
    if body.conditions is not None:
        rule.conditions = body.conditions.model_dump_json()
    if body.actions is not None:
        rule.actions = body.actions.model_dump_json()
    if body.enabled is not None:
        rule.enabled = body.enabled
    rule.updated_at = utcnow()

    session.add(rule)
    await session.commit()
    await session.refresh(rule)
    return _to_read(rule)


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rule(
    rule_id: uuid.UUID,
    auth: Auth,
    session: Session,
) -> None:
    rule = await _get_or_404(rule_id, auth.user_id, session)
    await session.delete(rule)
    await session.commit()


# ── Internal helper ───────────────────────────────────────────

async def _get_or_404(
    rule_id: uuid.UUID,
    user_id: str,
    session,
) -> MonitoringRule:
    stmt = select(MonitoringRule).where(
        MonitoringRule.id == rule_id,
        MonitoringRule.user_id == user_id,
    )
    result = await session.execute(stmt)
    rule = result.scalar_one_or_none()
    if rule is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Monitoring rule not found"
        )
    return rule
