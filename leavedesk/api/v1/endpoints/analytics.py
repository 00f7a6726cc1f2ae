"""
Analytics endpoints: cached window statistics, department breakdown and
sick-leave trends. Managers and admins only.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_db, require_manager
from leavedesk.models.user import User
from leavedesk.schemas.analytics import (AnalyticsSnapshot, DepartmentStat,
                                         SickLeaveTrend)
from leavedesk.services.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("", response_model=AnalyticsSnapshot)
async def get_analytics(
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    department: Optional[str] = Query(default=None, max_length=100),
    refresh: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    _manager: User = Depends(require_manager),
) -> AnalyticsSnapshot:
    """Statistics for a month (or a whole year), served from the snapshot cache."""
    service = AnalyticsService(db)
    year = year or date.today().year
    if refresh:
        return await service.calculate(year, month, department)
    return await service.get_cached(year, month, department)


@router.get("/departments", response_model=list[DepartmentStat])
async def analytics_by_department(
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    _manager: User = Depends(require_manager),
) -> list[DepartmentStat]:
    return await AnalyticsService(db).by_department(year or date.today().year, month)


@router.get("/sick-trends", response_model=list[SickLeaveTrend])
async def sick_leave_trends(
    months: int = Query(default=12, ge=1, le=36),
    db: AsyncSession = Depends(get_db),
    _manager: User = Depends(require_manager),
) -> list[SickLeaveTrend]:
    return await AnalyticsService(db).sick_leave_trends(months)
