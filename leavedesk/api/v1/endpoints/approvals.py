"""
Approval endpoints: the manager's queue and decisions.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_db, get_graph_client, require_manager
from leavedesk.integrations.graph import GraphClient
from leavedesk.models.absence import Absence
from leavedesk.models.user import User
from leavedesk.schemas.absence import (AbsenceActionResponse, AbsenceRead,
                                       RejectRequest)
from leavedesk.services.absences import AbsenceService

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("", response_model=list[AbsenceRead])
async def pending_approvals(
    db: AsyncSession = Depends(get_db),
    manager: User = Depends(require_manager),
) -> list[Absence]:
    """Pending requests of the caller's reports (all of them for admins)."""
    return await AbsenceService(db).pending_for_manager(manager)


@router.post("/{absence_id}/approve", response_model=AbsenceActionResponse)
async def approve_absence(
    absence_id: int,
    db: AsyncSession = Depends(get_db),
    graph: Optional[GraphClient] = Depends(get_graph_client),
    manager: User = Depends(require_manager),
) -> AbsenceActionResponse:
    outcome = await AbsenceService(db, graph).approve(absence_id, manager)
    return AbsenceActionResponse(
        absence=AbsenceRead.model_validate(outcome.absence),
        message="Abwesenheit genehmigt",
        integrations=outcome.integration_summary(),
    )


@router.post("/{absence_id}/reject", response_model=AbsenceActionResponse)
async def reject_absence(
    absence_id: int,
    body: Optional[RejectRequest] = None,
    db: AsyncSession = Depends(get_db),
    graph: Optional[GraphClient] = Depends(get_graph_client),
    manager: User = Depends(require_manager),
) -> AbsenceActionResponse:
    """Reject a request; a blank reason is replaced by the default text."""
    reason = body.reason if body else None
    outcome = await AbsenceService(db, graph).reject(absence_id, manager, reason)
    return AbsenceActionResponse(
        absence=AbsenceRead.model_validate(outcome.absence),
        message="Abwesenheit abgelehnt",
        integrations=outcome.integration_summary(),
    )
