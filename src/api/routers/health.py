"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_settings
from core.config import Settings


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class IntegrationStatus(BaseModel):
    """Whether each chat integration has its credential configured."""

    telegram: bool
    whatsapp: bool
    gemini: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    integrations: IntegrationStatus


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """
    Check database connectivity and report configured chat integrations.

    Missing integration credentials don't degrade the status; the webhook
    that needs one fails at the point of use instead.
    """
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
        integrations=IntegrationStatus(
            telegram=bool(settings.telegram_bot_token),
            whatsapp=bool(settings.whapi_api_token),
            gemini=bool(settings.gemini_api_key),
        ),
    )
