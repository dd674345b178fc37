"""V1 API router aggregation."""

from fastapi import APIRouter

from app.api.v1.hooks import router as hooks_router
from app.api.v1.monitoring_rules import router as monitoring_rules_router
from app.api.v1.webhooks import router as webhooks_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(hooks_router)
v1_router.include_router(webhooks_router)
v1_router.include_router(monitoring_rules_router)
