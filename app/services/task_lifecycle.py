"""Webhook task lifecycle.

    pending ──> processing ──> completed
                     └──────> failed

Each transition is one conditional UPDATE, so a task is only claimed once
even when its job is delivered twice. Terminal states are never left and
failed tasks are not retried.
"""

import json
import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.event import WebhookEvent
from app.models.monitoring_rule import RuleSnapshot
from app.models.webhook_task import TaskStatus, WebhookTask
from app.services.actions import ActionExecutor

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def create_task(
    session: AsyncSession,
    webhook_id: uuid.UUID,
    event: WebhookEvent,
    rules: Iterable[RuleSnapshot],
    *,
    now: datetime | None = None,
) -> WebhookTask:
    """Stage a pending task embedding the event and the matched rules.

    The caller owns the commit, so the task lands in the same transaction as
    the delivery log.
    """
    task = WebhookTask(
        webhook_id=webhook_id,
        event=event.model_dump_json(),
        rules=json.dumps([rule.model_dump(mode="json") for rule in rules]),
        status=TaskStatus.PENDING,
        created_at=now or utcnow(),
    )
    session.add(task)
    return task


async def transition(
    session: AsyncSession,
    task_id: uuid.UUID,
    expected: TaskStatus,
    target: TaskStatus,
    **values,
) -> bool:
    """Move a task from ``expected`` to ``target`` atomically.

    Returns False when the task was not in ``expected`` (or does not exist).
    """
    stmt = (
        update(WebhookTask)
        .where(WebhookTask.id == task_id, WebhookTask.status == expected)
        .values(status=target, **values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount == 1


async def run_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    executor: ActionExecutor,
    *,
    clock: Clock = utcnow,
) -> TaskStatus | None:
    """Claim a pending task, run every matched rule's actions, record the outcome.

    Returns the terminal status, or None if the task was not pending.
    """
    claimed = await transition(
        session, task_id, TaskStatus.PENDING, TaskStatus.PROCESSING, started_at=clock()
    )
    if not claimed:
        logger.info("Task %s is not pending; skipping", task_id)
        return None

    try:
        task = await session.get(WebhookTask, task_id, populate_existing=True)
        if task is None:
            raise LookupError(f"Task {task_id} disappeared while processing")

        event = task.parsed_event()
        failed_actions = 0
        for rule in task.parsed_rules():
            results = await executor.execute(rule, event)
            failed_actions += sum(1 for r in results if not r.ok)

        await transition(
            session, task_id, TaskStatus.PROCESSING, TaskStatus.COMPLETED, completed_at=clock()
        )
    except Exception as exc:
        logger.exception("Task %s failed", task_id)
        await session.rollback()
        await transition(
            session,
            task_id,
            TaskStatus.PROCESSING,
            TaskStatus.FAILED,
            failed_at=clock(),
            error=(str(exc) or exc.__class__.__name__)[:2000],
        )
        return TaskStatus.FAILED

    if failed_actions:
        logger.warning("Task %s completed with %d failed action(s)", task_id, failed_actions)
    else:
        logger.info("Task %s completed", task_id)
    return TaskStatus.COMPLETED
