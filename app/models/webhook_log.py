"""Append-only audit record of accepted inbound webhook deliveries."""

import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.models.base import new_uuid, utcnow


class WebhookLog(SQLModel, table=True):
    __tablename__ = "webhook_logs"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    webhook_id: uuid.UUID = Field(nullable=False, index=True)
    event: str = Field(max_length=100, nullable=False)
    repository: str = Field(default="", max_length=255)
    sender: str = Field(default="", max_length=255)
    timestamp: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    processed: bool = Field(default=False)


class WebhookLogRead(SQLModel):
    id: uuid.UUID
    webhook_id: uuid.UUID
    event: str
    repository: str
    sender: str
    timestamp: datetime
    processed: bool
