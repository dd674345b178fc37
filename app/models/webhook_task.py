"""Webhook task — the durable unit of work for one inbound event."""

import json
import uuid
from datetime import datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import json_text_column, new_uuid, utcnow
from app.models.event import WebhookEvent
from app.models.monitoring_rule import RuleSnapshot


class TaskStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class WebhookTask(SQLModel, table=True):
    __tablename__ = "webhook_tasks"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    webhook_id: uuid.UUID = Field(nullable=False, index=True)

    # Canonical event and matched rules, embedded as JSON at creation time
    event: str = Field(sa_column=json_text_column())
    rules: str = Field(default="[]", sa_column=json_text_column("[]"))

    status: TaskStatus = Field(default=TaskStatus.PENDING, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None, index=True)
    failed_at: datetime | None = Field(default=None)
    error: str | None = Field(default=None, max_length=2000)

    def parsed_event(self) -> WebhookEvent:
        return WebhookEvent.model_validate_json(self.event)

    def parsed_rules(self) -> list[RuleSnapshot]:
        return [RuleSnapshot.model_validate(r) for r in json.loads(self.rules)]


class WebhookTaskRead(SQLModel):
    id: uuid.UUID
    webhook_id: uuid.UUID
    status: TaskStatus
    rule_ids: list[str]
    event: str
    repository: str
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None
    failed_at: datetime | None
    error: str | None
