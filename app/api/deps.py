"""FastAPI dependencies for authentication, sessions and the job queue."""

import uuid
from collections.abc import Awaitable, Callable
from typing import Annotated

from arq.connections import ArqRedis, create_pool
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import decode_jwt
from app.workers.main import _redis_settings
from app.workers.tasks import enqueue_task

bearer_scheme = HTTPBearer()

TaskEnqueuer = Callable[[uuid.UUID], Awaitable[None]]


class AuthContext:
    """Resolved identity carried through a request."""

    __slots__ = ("user_id",)

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> AuthContext:
    """Resolve a bearer JWT to the owning user.

    Sessions are issued by the dashboard's auth service; this API only
    verifies the signature and reads the ``sub`` claim.
    """
    try:
        payload = decode_jwt(credentials.credentials)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired JWT",
        ) from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed JWT payload",
        )
    return AuthContext(user_id=str(subject))


async def _enqueue_webhook_task(task_id: uuid.UUID) -> None:
    """Enqueue the processing job for a staged task on a short-lived pool."""
    redis: ArqRedis = await create_pool(_redis_settings())
    try:
        await enqueue_task(redis, task_id)
    finally:
        await redis.aclose()


def get_task_enqueuer() -> TaskEnqueuer:
    return _enqueue_webhook_task


# Typed shorthand for use in route signatures
Auth = Annotated[AuthContext, Depends(get_auth_context)]
Session = Annotated[AsyncSession, Depends(get_session)]
Enqueuer = Annotated[TaskEnqueuer, Depends(get_task_enqueuer)]
