"""
Absence endpoints: the signed-in user's own requests.

Every route works on behalf of the caller; ownership and state checks live
in ``AbsenceService`` and surface as domain errors.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_current_active_user, get_db, get_graph_client
from leavedesk.core.enums import AbsenceStatus, AbsenceType
from leavedesk.integrations.graph import GraphClient
from leavedesk.models.absence import Absence
from leavedesk.models.user import User
from leavedesk.schemas.absence import (AbsenceCreate, AbsenceCreated,
                                       AbsenceRead, AbsenceStatsResponse,
                                       AbsenceUpdate, ConflictRead)
from leavedesk.services.absences import AbsenceService
from leavedesk.services.conflicts import ConflictCheck, conflict_warning_message

router = APIRouter(prefix="/absences", tags=["absences"])


def _conflict_read(check: ConflictCheck) -> ConflictRead:
    return ConflictRead(
        has_conflict=check.has_conflict,
        concurrent_absences=check.concurrent_absences,
        max_allowed=check.max_allowed,
        conflicting_users=check.conflicting_users,
        message=conflict_warning_message(check),
    )


@router.get("", response_model=list[AbsenceRead])
async def list_absences(
    status: Optional[AbsenceStatus] = Query(default=None),
    absence_type: Optional[AbsenceType] = Query(default=None, alias="type"),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[Absence]:
    """List the caller's absences, newest first."""
    return await AbsenceService(db).list_for_user(user, status=status, absence_type=absence_type, year=year)


@router.post("", response_model=AbsenceCreated, status_code=201)
async def create_absence(
    body: AbsenceCreate,
    db: AsyncSession = Depends(get_db),
    graph: Optional[GraphClient] = Depends(get_graph_client),
    user: User = Depends(get_current_active_user),
) -> AbsenceCreated:
    """Submit a request. Sick leave is approved immediately."""
    outcome = await AbsenceService(db, graph).create(user, body)
    return AbsenceCreated(
        absence=AbsenceRead.model_validate(outcome.absence),
        conflict=_conflict_read(outcome.conflict),
    )


@router.get("/stats", response_model=AbsenceStatsResponse)
async def absence_stats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> AbsenceStatsResponse:
    """Counts, vacation balance and the next approved absences."""
    return await AbsenceService(db).user_stats(user)


@router.get("/conflicts", response_model=ConflictRead)
async def check_conflicts(
    start_date: date,
    end_date: date,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> ConflictRead:
    """Preview the team conflict check for a date range."""
    return _conflict_read(await AbsenceService(db).check_conflicts(user, start_date, end_date))


@router.get("/{absence_id}", response_model=AbsenceRead)
async def get_absence(
    absence_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> Absence:
    return await AbsenceService(db).get(absence_id, user)


@router.put("/{absence_id}", response_model=AbsenceRead)
async def update_absence(
    absence_id: int,
    body: AbsenceUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> Absence:
    """Edit a pending request."""
    return await AbsenceService(db).update(absence_id, user, body)


@router.delete("/{absence_id}", response_model=AbsenceRead)
async def cancel_absence(
    absence_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> Absence:
    """Cancel a pending or approved request. The record is kept."""
    return await AbsenceService(db).cancel(absence_id, user)
