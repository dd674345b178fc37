"""Shared test fixtures — async SQLite in-memory DB + test client."""

import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

from cryptography.fernet import Fernet

# Settings are read once at import time; configure secrets before importing app
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

# Import all models so metadata is populated
import app.models  # noqa: F401, E402
from app.api.deps import get_task_enqueuer  # noqa: E402
from app.core.database import get_session  # noqa: E402
from app.core.security import create_jwt, encrypt_value, generate_webhook_secret  # noqa: E402
from app.main import app  # noqa: E402
from app.models.monitoring_rule import MonitoringRule, RuleActions, RuleConditions  # noqa: E402
from app.models.webhook import WebhookConfig, WebhookProvider  # noqa: E402

USER_ID = "user-1"


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def test_session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as sess:
        yield sess
        await sess.rollback()


@pytest.fixture
def task_enqueuer() -> AsyncMock:
    """Stands in for the arq enqueue performed after a task is staged."""
    return AsyncMock()


@pytest.fixture
async def client(session, task_enqueuer) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client with DB session and job queue overrides."""

    async def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_task_enqueuer] = lambda: task_enqueuer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {create_jwt(USER_ID)}"}


@pytest.fixture
def make_webhook(session):
    """Insert a webhook directly; returns (webhook, plaintext secret)."""

    async def _make(
        provider: WebhookProvider = WebhookProvider.GITHUB,
        *,
        active: bool = True,
        user_id: str = USER_ID,
    ) -> tuple[WebhookConfig, str]:
        secret = generate_webhook_secret()
        wh = WebhookConfig(
            user_id=user_id,
            provider=provider,
            repository_id="1296269",
            repository_name="Hello-World",
            repository_url="https://github.com/octocat/Hello-World",
            events='["push", "pull_request"]',
            secret=encrypt_value(secret),
            active=active,
        )
        session.add(wh)
        await session.commit()
        return wh, secret

    return _make


@pytest.fixture
def make_rule(session):
    """Insert a monitoring rule for a webhook."""

    async def _make(
        webhook: WebhookConfig,
        *,
        name: str = "Rule",
        conditions: RuleConditions | None = None,
        actions: RuleActions | None = None,
        enabled: bool = True,
    ) -> MonitoringRule:
        rule = MonitoringRule(
            user_id=webhook.user_id,
            webhook_id=webhook.id,
            name=name,
            conditions=(conditions or RuleConditions()).model_dump_json(),
            actions=(actions or RuleActions()).model_dump_json(),
            enabled=enabled,
        )
        session.add(rule)
        await session.commit()
        return rule

    return _make
