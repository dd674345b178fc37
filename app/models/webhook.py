"""Webhook configuration — one per monitored repository connection."""

import json
import uuid
from datetime import datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, json_text_column, new_uuid


class WebhookProvider(StrEnum):
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"


class WebhookConfig(TimestampMixin, SQLModel, table=True):
    __tablename__ = "webhooks"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    user_id: str = Field(max_length=128, nullable=False, index=True)
    provider: WebhookProvider = Field(nullable=False)

    repository_id: str = Field(max_length=255, nullable=False)
    repository_name: str = Field(max_length=255, nullable=False)
    repository_url: str = Field(default="", max_length=2048)

    # JSON array of subscribed event kinds, e.g. ["push", "pull_request"]
    events: str = Field(default="[]", sa_column=json_text_column("[]"))

    # Fernet ciphertext of the shared secret; plaintext is shown once at creation
    secret: str = Field(nullable=False)

    active: bool = Field(default=True, index=True)
    last_triggered_at: datetime | None = Field(default=None)

    def event_list(self) -> list[str]:
        return json.loads(self.events) if isinstance(self.events, str) else list(self.events)


# ── Pydantic schemas ─────────────────────────────────────────


class WebhookCreate(SQLModel):
    provider: WebhookProvider
    repository_id: str = Field(max_length=255)
    repository_name: str = Field(max_length=255)
    repository_url: str = Field(default="", max_length=2048)
    events: list[str] = Field(default_factory=lambda: ["push", "pull_request"])
    active: bool = True


class WebhookUpdate(SQLModel):
    repository_name: str | None = Field(default=None, max_length=255)
    repository_url: str | None = Field(default=None, max_length=2048)
    events: list[str] | None = None
    active: bool | None = None


class WebhookRead(SQLModel):
    id: uuid.UUID
    user_id: str
    provider: WebhookProvider
    repository_id: str
    repository_name: str
    repository_url: str
    events: list[str]
    active: bool
    has_secret: bool
    last_triggered_at: datetime | None
    created_at: datetime
    updated_at: datetime


class WebhookCreated(WebhookRead):
    """Returned exactly once at creation time — includes the raw secret."""
    secret: str
    delivery_url: str


class WebhookStats(SQLModel):
    total_events: int
    events_by_type: dict[str, int]
    last_event_at: datetime | None = None
