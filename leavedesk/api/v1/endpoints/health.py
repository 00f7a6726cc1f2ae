"""Public health check."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_db
from leavedesk.core.config import settings
from leavedesk.schemas.system import HealthResponse

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """DB connectivity and whether Graph credentials are set."""
    result = HealthResponse(db=False, graph_configured=settings.graph_configured, version=settings.VERSION)
    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)
    return result
