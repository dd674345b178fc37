"""Import all models so SQLModel.metadata picks them up."""

from app.models.event import (
    CommitInfo,
    EventChanges,
    EventRepository,
    EventSender,
    FileChange,
    PullRequestInfo,
    WebhookEvent,
)
from app.models.monitoring_rule import (
    MonitoringRule,
    MonitoringRuleCreate,
    MonitoringRuleRead,
    MonitoringRuleUpdate,
    RuleActions,
    RuleConditions,
    RuleSnapshot,
    Severity,
)
from app.models.notification import Notification, NotificationCategory, NotificationPriority
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

__all__ = [
    "CommitInfo",
    "EventChanges",
    "EventRepository",
    "EventSender",
    "FileChange",
    "MonitoringRule",
    "MonitoringRuleCreate",
    "MonitoringRuleRead",
    "MonitoringRuleUpdate",
    "Notification",
    "NotificationCategory",
    "NotificationPriority",
    "PullRequestInfo",
    "RuleActions",
    "RuleConditions",
    "RuleSnapshot",
    "Severity",
    "TaskStatus",
    "WebhookConfig",
    "WebhookCreate",
    "WebhookCreated",
    "WebhookEvent",
    "WebhookLog",
    "WebhookLogRead",
    "WebhookProvider",
    "WebhookRead",
    "WebhookStats",
    "WebhookTask",
    "WebhookTaskRead",
    "WebhookUpdate",
]
