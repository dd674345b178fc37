"""Webhook task worker — runs the actions of one staged task."""

from __future__ import annotations

import logging
import uuid

from arq.connections import ArqRedis

from app.core.database import async_session_factory
from app.services.actions import ActionExecutor, ArqScanQueue, DatabaseNotifier, LoggingProviderClient
from app.services.task_lifecycle import run_task

logger = logging.getLogger(__name__)

TASK_JOB_NAME = "process_webhook_task"


async def enqueue_task(redis: ArqRedis, task_id: uuid.UUID) -> None:
    """Trigger processing of a freshly created task.

    The job id is derived from the task id, so re-enqueueing the same task
    is a no-op while the first job is still known to arq.
    """
    await redis.enqueue_job(
        TASK_JOB_NAME,
        task_id=str(task_id),
        _job_id=f"webhook-task:{task_id}",
    )


async def process_webhook_task(ctx: dict, task_id: str) -> dict:
    """ARQ task: claim a pending webhook task and execute its rule actions.

    Args:
        ctx: ARQ worker context; ``ctx["redis"]`` is the pool scans are
            enqueued on.
        task_id: UUID of the WebhookTask to process.

    Returns:
        dict with the resulting task status, or "skipped".
    """
    async with async_session_factory() as session:
        executor = ActionExecutor(
            scan_queue=ArqScanQueue(ctx["redis"]),
            notifier=DatabaseNotifier(session),
            provider_client=LoggingProviderClient(),
        )
        status = await run_task(session, uuid.UUID(task_id), executor)

    return {"task_id": task_id, "status": status.value if status else "skipped"}
