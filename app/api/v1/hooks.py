"""Inbound webhook endpoint — receives deliveries from source-control providers."""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from app.api.deps import Enqueuer, Session
from app.core.exceptions import IngestError
from app.services.ingestion import ingest_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hooks", tags=["hooks"])


class IngestResponse(BaseModel):
    success: bool
    message: str
    rules_triggered: int = Field(serialization_alias="rulesTriggered")


@router.post("", response_model=IngestResponse)
async def receive_webhook(
    request: Request,
    session: Session,
    enqueue: Enqueuer,
    webhook_id: Annotated[str | None, Query(alias="webhookId")] = None,
) -> IngestResponse:
    """Authenticate, normalize and match one provider delivery.

    The raw body is read before any parsing so the signature is computed
    over exactly the bytes the provider signed.
    """
    if not webhook_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing webhookId parameter",
        )

    try:
        raw_body = await request.body()
        result = await ingest_event(session, webhook_id, request.headers, raw_body)
    except IngestError as exc:
        logger.info("Rejected delivery for webhook %s: %s", webhook_id, exc.detail)
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    except Exception as exc:
        logger.exception("Webhook processing error for %s", webhook_id)
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from exc

    if result.task_id is not None:
        try:
            await enqueue(result.task_id)
        except Exception:
            # The task row is committed; it stays pending and visible
            logger.exception("Failed to enqueue webhook task %s", result.task_id)

    return IngestResponse(
        success=True,
        message="Webhook processed successfully",
        rules_triggered=result.rules_triggered,
    )
