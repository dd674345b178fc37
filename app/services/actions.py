"""Action execution for matched monitoring rules.

Every action runs behind its own guard: a failing action is logged and
reported as a failed ``ActionResult`` but never stops the remaining actions
or rules. Collaborators (scan queue, notifier, provider client) are passed
in, so tests and alternative backends can swap them.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from arq.connections import ArqRedis
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import EventRepository, WebhookEvent
from app.models.monitoring_rule import RuleSnapshot, Severity
from app.models.notification import Notification, NotificationCategory, NotificationPriority

logger = logging.getLogger(__name__)

SCAN_JOB_NAME = "scan_repository"

_SEVERITY_PRIORITY: dict[Severity, NotificationPriority] = {
    Severity.CRITICAL: NotificationPriority.URGENT,
    Severity.HIGH: NotificationPriority.HIGH,
    Severity.MEDIUM: NotificationPriority.NORMAL,
    Severity.LOW: NotificationPriority.LOW,
}


def notification_priority(severity: Severity | None) -> NotificationPriority:
    if severity is None:
        return NotificationPriority.HIGH
    return _SEVERITY_PRIORITY[severity]


class ScanRequest(BaseModel):
    """Work item handed to the external analysis worker."""

    webhook_id: str
    repository: EventRepository
    event: str
    files: list[str] = Field(default_factory=list)
    custom_rule_ids: list[str] = Field(default_factory=list)
    min_severity: Severity | None = None
    priority: str = "high"


@dataclass(frozen=True)
class ActionResult:
    action: str
    ok: bool
    error: str | None = None


# ── Collaborator interfaces ───────────────────────────────────


class ScanQueue(Protocol):
    async def enqueue(self, request: ScanRequest) -> None: ...


class Notifier(Protocol):
    async def notify(
        self,
        user_ids: list[str],
        title: str,
        message: str,
        *,
        event: WebhookEvent,
        priority: NotificationPriority,
        category: NotificationCategory = NotificationCategory.SECURITY,
        send_email: bool = False,
    ) -> None: ...


class ProviderClient(Protocol):
    async def block_pull_request(self, rule: RuleSnapshot, event: WebhookEvent) -> None: ...

    async def create_issue(self, rule: RuleSnapshot, event: WebhookEvent) -> None: ...


# ── Default implementations ───────────────────────────────────


class ArqScanQueue:
    """Enqueue scan requests on the shared arq Redis queue."""

    def __init__(self, redis: ArqRedis) -> None:
        self._redis = redis

    async def enqueue(self, request: ScanRequest) -> None:
        await self._redis.enqueue_job(SCAN_JOB_NAME, request=request.model_dump(mode="json"))
        logger.info(
            "Enqueued %s scan of %d file(s) for %s",
            request.priority, len(request.files), request.repository.full_name,
        )


class DatabaseNotifier:
    """Write one inbox row per recipient."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def notify(
        self,
        user_ids: list[str],
        title: str,
        message: str,
        *,
        event: WebhookEvent,
        priority: NotificationPriority,
        category: NotificationCategory = NotificationCategory.SECURITY,
        send_email: bool = False,
    ) -> None:
        rows = [
            Notification(
                user_id=user_id,
                title=title,
                message=message,
                category=category,
                priority=priority,
                repository=event.repository.name,
                event=event.event,
                sender=event.sender.username,
                send_email=send_email,
            )
            for user_id in user_ids
        ]
        self._session.add_all(rows)
        try:
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise


class LoggingProviderClient:
    """Placeholder provider integration: records the request, calls no API."""

    async def block_pull_request(self, rule: RuleSnapshot, event: WebhookEvent) -> None:
        pr_url = event.pull_request.url if event.pull_request else ""
        logger.info("PR blocking requested by rule %s: %s", rule.id, pr_url)

    async def create_issue(self, rule: RuleSnapshot, event: WebhookEvent) -> None:
        logger.info(
            "Issue creation requested by rule %s for %s", rule.id, event.repository.name
        )


# ── Executor ──────────────────────────────────────────────────


class ActionExecutor:
    def __init__(
        self,
        scan_queue: ScanQueue,
        notifier: Notifier,
        provider_client: ProviderClient | None = None,
    ) -> None:
        self._scan_queue = scan_queue
        self._notifier = notifier
        self._provider_client = provider_client or LoggingProviderClient()

    async def execute(self, rule: RuleSnapshot, event: WebhookEvent) -> list[ActionResult]:
        """Run the rule's enabled actions in a fixed order."""
        actions = rule.actions
        results: list[ActionResult] = []

        if actions.scan_immediately:
            results.append(await self._guard("scan", self._scan, rule, event))

        if actions.notify_users:
            results.append(await self._guard("notify", self._notify, rule, event))
        elif actions.send_email:
            logger.info("Rule %s requests e-mail but lists no recipients", rule.id)

        if actions.block_pr:
            if event.pull_request is not None:
                results.append(
                    await self._guard("block_pr", self._provider_client.block_pull_request, rule, event)
                )
            else:
                logger.debug("Rule %s asks to block a PR but event has none", rule.id)

        if actions.create_issue:
            results.append(
                await self._guard("create_issue", self._provider_client.create_issue, rule, event)
            )

        return results

    async def _guard(
        self,
        name: str,
        action: Callable[[RuleSnapshot, WebhookEvent], Awaitable[None]],
        rule: RuleSnapshot,
        event: WebhookEvent,
    ) -> ActionResult:
        try:
            await action(rule, event)
        except Exception as exc:
            logger.exception("Action %s failed for rule %s", name, rule.id)
            return ActionResult(name, ok=False, error=str(exc) or exc.__class__.__name__)
        return ActionResult(name, ok=True)

    async def _scan(self, rule: RuleSnapshot, event: WebhookEvent) -> None:
        await self._scan_queue.enqueue(
            ScanRequest(
                webhook_id=rule.webhook_id,
                repository=event.repository,
                event=event.event,
                files=event.changed_files(),
                custom_rule_ids=rule.conditions.custom_rule_ids or [],
                min_severity=rule.conditions.min_severity,
            )
        )

    async def _notify(self, rule: RuleSnapshot, event: WebhookEvent) -> None:
        await self._notifier.notify(
            rule.actions.notify_users,
            "Repository Alert",
            f"{event.event} detected in {event.repository.name}",
            event=event,
            priority=notification_priority(rule.conditions.min_severity),
            send_email=rule.actions.send_email,
        )
