"""
Public holiday endpoints: German national and regional holidays, bridge
days and vacation suggestions. Nothing here touches the database except
the default region from the company settings.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_current_active_user, get_db
from leavedesk.core.exceptions import NotFoundError, ValidationError
from leavedesk.models.user import User
from leavedesk.schemas.calendar import (BridgeDayRead, HolidayCheck,
                                        HolidayRead, NextHoliday,
                                        VacationSuggestionRead)
from leavedesk.services import calendar
from leavedesk.services.policy import load_policy

router = APIRouter(prefix="/holidays", tags=["holidays"])


async def _region(db: AsyncSession, state: Optional[str]) -> str:
    if state is None:
        return (await load_policy(db)).region
    state = state.upper()
    if state not in calendar.REGIONS:
        raise ValidationError(f"Unknown state code: {state}")
    return state


@router.get("", response_model=list[HolidayRead])
async def list_holidays(
    year: Optional[int] = Query(default=None, ge=1900, le=2200),
    state: Optional[str] = Query(default=None, max_length=2),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> list[calendar.Holiday]:
    """Holidays of a year for a state (company state by default)."""
    region = await _region(db, state)
    return calendar.holidays_for_year(year or date.today().year, region)


@router.get("/upcoming", response_model=list[HolidayRead])
async def upcoming_holidays(
    days: int = Query(default=90, ge=1, le=366),
    state: Optional[str] = Query(default=None, max_length=2),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> list[calendar.Holiday]:
    return calendar.upcoming_holidays(await _region(db, state), days)


@router.get("/next", response_model=NextHoliday)
async def next_holiday(
    state: Optional[str] = Query(default=None, max_length=2),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> NextHoliday:
    found = calendar.days_until_next_holiday(await _region(db, state))
    if found is None:
        raise NotFoundError("No upcoming holiday")
    holiday, days = found
    return NextHoliday(holiday=HolidayRead.model_validate(holiday), days_until=days)


@router.get("/bridge-days", response_model=list[BridgeDayRead])
async def bridge_days(
    year: Optional[int] = Query(default=None, ge=1900, le=2200),
    state: Optional[str] = Query(default=None, max_length=2),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> list[BridgeDayRead]:
    bridges = calendar.detect_bridge_days(year or date.today().year, await _region(db, state))
    return [BridgeDayRead.model_validate(b) for b in bridges]


@router.get("/suggestions", response_model=list[VacationSuggestionRead])
async def vacation_suggestions(
    year: Optional[int] = Query(default=None, ge=1900, le=2200),
    available_days: float = Query(default=3, ge=0),
    state: Optional[str] = Query(default=None, max_length=2),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> list[calendar.VacationSuggestion]:
    """Bridge days with the biggest weekend payoff."""
    region = await _region(db, state)
    return calendar.suggest_vacation_periods(year or date.today().year, region, available_days)


@router.get("/check", response_model=HolidayCheck)
async def check_day(
    day: date,
    state: Optional[str] = Query(default=None, max_length=2),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> HolidayCheck:
    holiday = calendar.find_holiday(day, await _region(db, state))
    return HolidayCheck(
        date=day,
        is_holiday=holiday is not None,
        is_weekend=calendar.is_weekend(day),
        holiday=HolidayRead.model_validate(holiday) if holiday else None,
    )
