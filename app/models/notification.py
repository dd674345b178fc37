"""User-facing notification raised by a matched monitoring rule."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from app.models.base import new_uuid, utcnow


class NotificationPriority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class NotificationCategory(StrEnum):
    SECURITY = "security"
    SYSTEM = "system"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    user_id: str = Field(max_length=128, nullable=False, index=True)
    type: str = Field(default="warning", max_length=20)
    title: str = Field(max_length=255, nullable=False)
    message: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    category: NotificationCategory = Field(default=NotificationCategory.SECURITY)
    priority: NotificationPriority = Field(default=NotificationPriority.HIGH)

    # Source context for the inbox entry
    repository: str = Field(default="", max_length=255)
    event: str = Field(default="", max_length=100)
    sender: str = Field(default="", max_length=255)

    # Picked up by the mailer when the rule asked for e-mail delivery
    send_email: bool = Field(default=False)
    read: bool = Field(default=False)
    timestamp: datetime = Field(default_factory=utcnow, nullable=False)
