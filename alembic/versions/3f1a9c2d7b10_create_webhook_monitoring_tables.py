"""create webhook monitoring tables

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-10-16 09:12:44.118202

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b10'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


_PROVIDER = sa.Enum("GITHUB", "GITLAB", "BITBUCKET", name="webhookprovider")
_TASK_STATUS = sa.Enum("PENDING", "PROCESSING", "COMPLETED", "FAILED", name="taskstatus")
_PRIORITY = sa.Enum("LOW", "NORMAL", "HIGH", "URGENT", name="notificationpriority")
_CATEGORY = sa.Enum("SECURITY", "SYSTEM", name="notificationcategory")


def upgrade() -> None:
    op.create_table(
        "webhooks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("provider", _PROVIDER, nullable=False),
        sa.Column("repository_id", sa.String(255), nullable=False),
        sa.Column("repository_name", sa.String(255), nullable=False),
        sa.Column("repository_url", sa.String(2048), nullable=False),
        sa.Column("events", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("secret", sa.String(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("last_triggered_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_webhooks_user_id", "webhooks", ["user_id"])
    op.create_index("ix_webhooks_active", "webhooks", ["active"])

    op.create_table(
        "monitoring_rules",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("webhook_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=False),
        sa.Column("conditions", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("actions", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_monitoring_rules_user_id", "monitoring_rules", ["user_id"])
    op.create_index("ix_monitoring_rules_webhook_id", "monitoring_rules", ["webhook_id"])
    op.create_index("ix_monitoring_rules_enabled", "monitoring_rules", ["enabled"])

    op.create_table(
        "webhook_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("webhook_id", sa.Uuid(), nullable=False),
        sa.Column("event", sa.String(100), nullable=False),
        sa.Column("repository", sa.String(255), nullable=False),
        sa.Column("sender", sa.String(255), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("processed", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_webhook_logs_webhook_id", "webhook_logs", ["webhook_id"])
    op.create_index("ix_webhook_logs_timestamp", "webhook_logs", ["timestamp"])

    op.create_table(
        "webhook_tasks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("webhook_id", sa.Uuid(), nullable=False),
        sa.Column("event", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("rules", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("status", _TASK_STATUS, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("failed_at", sa.DateTime(), nullable=True),
        sa.Column("error", sa.String(2000), nullable=True),
    )
    op.create_index("ix_webhook_tasks_webhook_id", "webhook_tasks", ["webhook_id"])
    op.create_index("ix_webhook_tasks_status", "webhook_tasks", ["status"])
    op.create_index("ix_webhook_tasks_completed_at", "webhook_tasks", ["completed_at"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", _CATEGORY, nullable=False),
        sa.Column("priority", _PRIORITY, nullable=False),
        sa.Column("repository", sa.String(255), nullable=False),
        sa.Column("event", sa.String(100), nullable=False),
        sa.Column("sender", sa.String(255), nullable=False),
        sa.Column("send_email", sa.Boolean(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_webhook_tasks_completed_at", table_name="webhook_tasks")
    op.drop_index("ix_webhook_tasks_status", table_name="webhook_tasks")
    op.drop_index("ix_webhook_tasks_webhook_id", table_name="webhook_tasks")
    op.drop_table("webhook_tasks")
    op.drop_index("ix_webhook_logs_timestamp", table_name="webhook_logs")
    op.drop_index("ix_webhook_logs_webhook_id", table_name="webhook_logs")
    op.drop_table("webhook_logs")
    op.drop_index("ix_monitoring_rules_enabled", table_name="monitoring_rules")
    op.drop_index("ix_monitoring_rules_webhook_id", table_name="monitoring_rules")
    op.drop_index("ix_monitoring_rules_user_id", table_name="monitoring_rules")
    op.drop_table("monitoring_rules")
    op.drop_index("ix_webhooks_active", table_name="webhooks")
    op.drop_index("ix_webhooks_user_id", table_name="webhooks")
    op.drop_table("webhooks")
    for enum in (_CATEGORY, _PRIORITY, _TASK_STATUS, _PROVIDER):
        enum.drop(op.get_bind(), checkfirst=True)
