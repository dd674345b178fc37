"""ARQ worker entrypoint."""

import asyncio
from datetime import timezone

from arq import cron
from arq.connections import RedisSettings

from app.core.config import configure_logging, get_settings
from app.workers.retention import cleanup_completed_tasks, cleanup_webhook_logs, sweep_stale_tasks
from app.workers.tasks import process_webhook_task


def _redis_settings() -> RedisSettings:
    """Parse REDIS_URL into ARQ RedisSettings."""
    settings = get_settings()
    # redis://host:port/db
    url = settings.redis_url
    # Strip scheme
    rest = url.split("://", 1)[1] if "://" in url else url
    host_port, _, db = rest.partition("/")
    host, _, port = host_port.partition(":")
    return RedisSettings(
        host=host or "localhost",
        port=int(port) if port else 6379,
        database=int(db) if db else 0,
    )


async def startup(ctx: dict) -> None:
    """Called when the worker starts."""
    from app.core.database import init_db
    configure_logging()
    await init_db()


async def shutdown(ctx: dict) -> None:
    """Called when the worker shuts down."""


class WorkerSettings:
    """ARQ worker configuration."""
    functions = [process_webhook_task]
    cron_jobs = [
        cron(cleanup_webhook_logs, hour={0}, minute={0}),
        cron(cleanup_completed_tasks, hour={1}, minute={0}),
        cron(sweep_stale_tasks, minute={0, 15, 30, 45}),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = _redis_settings()
    timezone = timezone.utc
    max_jobs = 10
    job_timeout = 300


if __name__ == "__main__":
    from arq import run_worker
    asyncio.run(run_worker(WorkerSettings))  # type: ignore[arg-type]
