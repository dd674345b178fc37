"""Task lifecycle tests — claim, complete, fail, and the arq job wrapper."""

import uuid
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

from app.models.event import (
    EventChanges,
    EventRepository,
    EventSender,
    FileChange,
    WebhookEvent,
)
from app.models.monitoring_rule import RuleActions, RuleSnapshot
from app.models.webhook import WebhookProvider
from app.models.webhook_task import TaskStatus, WebhookTask
from app.services.actions import ActionExecutor
from app.services.task_lifecycle import create_task, run_task, transition
from app.workers.tasks import TASK_JOB_NAME, enqueue_task, process_webhook_task

T0 = datetime(2026, 10, 16, 10, 0, 0)


def _event() -> WebhookEvent:
    return WebhookEvent(
        provider=WebhookProvider.GITHUB,
        event="push",
        repository=EventRepository(id="1", name="Hello-World", full_name="octocat/Hello-World"),
        sender=EventSender(id="2", username="octocat"),
        changes=EventChanges(files=[FileChange(filename="src/auth/login.ts")]),
        timestamp=T0,
    )


def _rule(**actions) -> RuleSnapshot:
    return RuleSnapshot(
        id=str(uuid.uuid4()),
        webhook_id=str(uuid.uuid4()),
        name="Auth",
        actions=RuleActions(**actions),
    )


def _ticking_clock(start: datetime):
    """Each call returns a time one second after the previous one."""
    state = {"now": start}

    def _now() -> datetime:
        state["now"] += timedelta(seconds=1)
        return state["now"]

    return _now


async def _stage(session, *rules: RuleSnapshot) -> uuid.UUID:
    task = create_task(session, uuid.uuid4(), _event(), rules or [_rule()], now=T0)
    await session.commit()
    return task.id


async def _reload(factory, task_id: uuid.UUID) -> WebhookTask:
    async with factory() as fresh:
        return await fresh.get(WebhookTask, task_id)


async def test_create_task_is_pending_with_embedded_snapshot(session, test_session_factory):
    rule = _rule(scan_immediately=True)
    task_id = await _stage(session, rule)

    task = await _reload(test_session_factory, task_id)
    assert task.status == TaskStatus.PENDING
    assert task.created_at == T0
    assert task.started_at is None
    assert task.parsed_event().changed_files() == ["src/auth/login.ts"]
    assert [r.id for r in task.parsed_rules()] == [rule.id]


async def test_run_task_completes(session, test_session_factory):
    task_id = await _stage(session, _rule(scan_immediately=True), _rule(notify_users=["u1"]))
    executor = ActionExecutor(AsyncMock(), AsyncMock(), AsyncMock())

    status = await run_task(session, task_id, executor, clock=_ticking_clock(T0))

    assert status is TaskStatus.COMPLETED
    task = await _reload(test_session_factory, task_id)
    assert task.status == TaskStatus.COMPLETED
    assert task.started_at is not None
    assert task.completed_at is not None
    assert task.started_at <= task.completed_at
    assert task.failed_at is None
    assert task.error is None


async def test_rules_run_in_stored_order(session):
    rules = [
        RuleSnapshot(id=name, webhook_id=f"wh-{name}", name=name, actions=RuleActions(scan_immediately=True))
        for name in ("A", "B", "C")
    ]
    task_id = await _stage(session, *rules)
    scan_queue = AsyncMock()

    status = await run_task(session, task_id, ActionExecutor(scan_queue, AsyncMock()))

    assert status is TaskStatus.COMPLETED
    enqueued = [call.args[0].webhook_id for call in scan_queue.enqueue.await_args_list]
    assert enqueued == ["wh-A", "wh-B", "wh-C"]


async def test_action_failures_still_complete_the_task(session, test_session_factory):
    scan_queue = AsyncMock()
    scan_queue.enqueue.side_effect = RuntimeError("queue unavailable")
    task_id = await _stage(session, _rule(scan_immediately=True))

    status = await run_task(session, task_id, ActionExecutor(scan_queue, AsyncMock()))

    assert status is TaskStatus.COMPLETED
    assert (await _reload(test_session_factory, task_id)).status == TaskStatus.COMPLETED


async def test_unexpected_error_marks_task_failed(session, test_session_factory):
    task_id = await _stage(session)
    executor = MagicMock()
    executor.execute = AsyncMock(side_effect=RuntimeError("executor crashed"))

    status = await run_task(session, task_id, executor, clock=_ticking_clock(T0))

    assert status is TaskStatus.FAILED
    task = await _reload(test_session_factory, task_id)
    assert task.status == TaskStatus.FAILED
    assert task.failed_at is not None
    assert task.completed_at is None
    assert task.error == "executor crashed"


async def test_corrupt_task_body_fails_with_message(session, test_session_factory):
    task_id = await _stage(session)
    async with test_session_factory() as other:
        task = await other.get(WebhookTask, task_id)
        task.rules = "not json"
        other.add(task)
        await other.commit()

    status = await run_task(session, task_id, ActionExecutor(AsyncMock(), AsyncMock()))

    assert status is TaskStatus.FAILED
    task = await _reload(test_session_factory, task_id)
    assert task.error


async def test_non_pending_task_is_skipped(session, test_session_factory):
    task_id = await _stage(session)
    assert await transition(session, task_id, TaskStatus.PENDING, TaskStatus.PROCESSING, started_at=T0)

    executor = MagicMock()
    executor.execute = AsyncMock()
    assert await run_task(session, task_id, executor) is None
    executor.execute.assert_not_awaited()
    assert (await _reload(test_session_factory, task_id)).status == TaskStatus.PROCESSING


async def test_transition_requires_expected_state(session):
    task_id = await _stage(session)
    assert await transition(session, task_id, TaskStatus.PROCESSING, TaskStatus.COMPLETED) is False
    assert await transition(session, uuid.uuid4(), TaskStatus.PENDING, TaskStatus.PROCESSING) is False


async def test_terminal_state_is_never_left(session, test_session_factory):
    task_id = await _stage(session)
    await run_task(session, task_id, ActionExecutor(AsyncMock(), AsyncMock()))

    assert await transition(session, task_id, TaskStatus.PENDING, TaskStatus.PROCESSING) is False
    assert await transition(session, task_id, TaskStatus.PROCESSING, TaskStatus.FAILED) is False
    assert (await _reload(test_session_factory, task_id)).status == TaskStatus.COMPLETED


# ── ARQ job wrapper ──────────────────────────────────────────


async def test_process_webhook_task_job(session, test_session_factory):
    task_id = await _stage(session, _rule(scan_immediately=True))
    mock_pool = AsyncMock()

    with patch("app.workers.tasks.async_session_factory", test_session_factory):
        result = await process_webhook_task({"redis": mock_pool}, str(task_id))

    assert result == {"task_id": str(task_id), "status": "completed"}
    mock_pool.enqueue_job.assert_awaited_once()
    assert mock_pool.enqueue_job.await_args.args[0] == "scan_repository"


async def test_process_webhook_task_twice_runs_once(session, test_session_factory):
    task_id = await _stage(session, _rule(scan_immediately=True))
    mock_pool = AsyncMock()

    with patch("app.workers.tasks.async_session_factory", test_session_factory):
        first = await process_webhook_task({"redis": mock_pool}, str(task_id))
        second = await process_webhook_task({"redis": mock_pool}, str(task_id))

    assert first["status"] == "completed"
    assert second["status"] == "skipped"
    assert mock_pool.enqueue_job.await_count == 1


async def test_enqueue_task_uses_task_derived_job_id():
    redis = AsyncMock()
    task_id = uuid.uuid4()

    await enqueue_task(redis, task_id)

    redis.enqueue_job.assert_awaited_once_with(
        TASK_JOB_NAME, task_id=str(task_id), _job_id=f"webhook-task:{task_id}"
    )
