"""Retention rules for delivery logs and tasks.

The ``*_clause`` builders are pure: given a reference time and an age they
return the SQL predicate selecting expired rows. The purge helpers run one
bulk DELETE (or UPDATE) with that predicate and are safe to re-run.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.core.config import get_settings
from app.models.base import utcnow
from app.models.webhook_log import WebhookLog
from app.models.webhook_task import TaskStatus, WebhookTask

logger = logging.getLogger(__name__)

STALE_TASK_ERROR = "Task timed out while processing"


def expired_logs_clause(now: datetime, max_age: timedelta) -> ColumnElement[bool]:
    return WebhookLog.timestamp < now - max_age


def expired_tasks_clause(now: datetime, max_age: timedelta) -> ColumnElement[bool]:
    # Failed tasks never get completed_at, so they are kept for inspection
    return and_(
        WebhookTask.completed_at.is_not(None),  # type: ignore[union-attr]
        WebhookTask.completed_at < now - max_age,
    )


def stale_tasks_clause(now: datetime, max_age: timedelta) -> ColumnElement[bool]:
    return and_(
        WebhookTask.status == TaskStatus.PROCESSING,
        WebhookTask.started_at.is_not(None),  # type: ignore[union-attr]
        WebhookTask.started_at < now - max_age,
    )


async def purge_expired_logs(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    max_age: timedelta | None = None,
) -> int:
    if max_age is None:
        max_age = timedelta(days=get_settings().webhook_log_retention_days)
    stmt = delete(WebhookLog).where(expired_logs_clause(now or utcnow(), max_age))
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount or 0


async def purge_completed_tasks(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    max_age: timedelta | None = None,
) -> int:
    if max_age is None:
        max_age = timedelta(days=get_settings().webhook_task_retention_days)
    stmt = delete(WebhookTask).where(expired_tasks_clause(now or utcnow(), max_age))
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount or 0


async def fail_stale_tasks(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    max_age: timedelta | None = None,
) -> int:
    """Move tasks stuck in processing (e.g. after a worker timeout) to failed."""
    now = now or utcnow()
    if max_age is None:
        max_age = timedelta(minutes=get_settings().task_stale_after_minutes)
    stmt = (
        update(WebhookTask)
        .where(stale_tasks_clause(now, max_age))
        .values(status=TaskStatus.FAILED, failed_at=now, error=STALE_TASK_ERROR)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount or 0
