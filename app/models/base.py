"""Shared base fields and column helpers for all models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def json_text_column(default: str = "{}") -> Column:
    """A non-null Text column holding a serialized JSON sub-document."""
    return Column(Text, nullable=False, server_default=default)


class TimestampMixin(SQLModel):
    """Created / updated timestamps injected into every mutable table."""

    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)
