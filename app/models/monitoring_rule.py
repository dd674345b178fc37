"""Monitoring rule — predicates and actions evaluated for one webhook."""

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field as PydanticField
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, json_text_column, new_uuid


class Severity(StrEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RuleConditions(BaseModel):
    """Conjunctive predicates. ``None`` or an empty list means "not set"."""

    file_patterns: list[str] | None = None
    branches: list[str] | None = None
    authors: list[str] | None = None
    # Passed through to the analysis queue, never evaluated here
    min_severity: Severity | None = None
    custom_rule_ids: list[str] | None = None


class RuleActions(BaseModel):
    scan_immediately: bool = False
    block_pr: bool = False
    notify_users: list[str] = PydanticField(default_factory=list)
    create_issue: bool = False
    send_email: bool = False


class MonitoringRule(TimestampMixin, SQLModel, table=True):
    __tablename__ = "monitoring_rules"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    user_id: str = Field(max_length=128, nullable=False, index=True)
    # Weak reference: deleting a webhook deletes its rules explicitly
    webhook_id: uuid.UUID = Field(nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)
    description: str = Field(default="", max_length=1000)

    conditions: str = Field(default="{}", sa_column=json_text_column())
    actions: str = Field(default="{}", sa_column=json_text_column())

    enabled: bool = Field(default=True, index=True)

    def parsed_conditions(self) -> RuleConditions:
        return RuleConditions.model_validate_json(self.conditions or "{}")

    def parsed_actions(self) -> RuleActions:
        return RuleActions.model_validate_json(self.actions or "{}")

    def snapshot(self) -> "RuleSnapshot":
        return RuleSnapshot(
            id=str(self.id),
            webhook_id=str(self.webhook_id),
            name=self.name,
            conditions=self.parsed_conditions(),
            actions=self.parsed_actions(),
        )


class RuleSnapshot(BaseModel):
    """Denormalized copy of a rule, frozen into a task at creation time."""

    id: str
    webhook_id: str
    name: str
    conditions: RuleConditions = PydanticField(default_factory=RuleConditions)
    actions: RuleActions = PydanticField(default_factory=RuleActions)


# ── Pydantic schemas ─────────────────────────────────────────


class MonitoringRuleCreate(SQLModel):
    webhook_id: uuid.UUID
    name: str = Field(max_length=255)
    description: str = Field(default="", max_length=1000)
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    actions: RuleActions = Field(default_factory=RuleActions)
    enabled: bool = True


class MonitoringRuleUpdate(SQLModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    conditions: RuleConditions | None = None
    actions: RuleActions | None = None
    enabled: bool | None = None


class MonitoringRuleRead(SQLModel):
    id: uuid.UUID
    user_id: str
    webhook_id: uuid.UUID
    name: str
    description: str
    conditions: RuleConditions
    actions: RuleActions
    enabled: bool
    created_at: datetime
    updated_at: datetime
