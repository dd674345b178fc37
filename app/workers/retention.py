"""Scheduled jobs — delete expired delivery logs and tasks, fail stale tasks."""

from __future__ import annotations

import logging

from app.core.database import async_session_factory
from app.services.retention import fail_stale_tasks, purge_completed_tasks, purge_expired_logs

logger = logging.getLogger(__name__)


async def cleanup_webhook_logs(ctx: dict) -> dict:
    """Daily job: remove webhook logs older than the retention window."""
    async with async_session_factory() as session:
        deleted = await purge_expired_logs(session)
    logger.info("Cleaned up %d old webhook logs", deleted)
    return {"deleted": deleted}


async def cleanup_completed_tasks(ctx: dict) -> dict:
    """Daily job: remove completed tasks older than the retention window."""
    async with async_session_factory() as session:
        deleted = await purge_completed_tasks(session)
    logger.info("Cleaned up %d completed tasks", deleted)
    return {"deleted": deleted}


async def sweep_stale_tasks(ctx: dict) -> dict:
    """Periodic job: fail tasks left in processing by an aborted worker."""
    async with async_session_factory() as session:
        failed = await fail_stale_tasks(session)
    if failed:
        logger.warning("Marked %d stale task(s) as failed", failed)
    return {"failed": failed}
