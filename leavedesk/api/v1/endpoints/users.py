"""
User endpoints: the signed-in profile, its manager and its direct reports.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import (get_current_active_user, get_db,
                                   get_graph_client, require_manager)
from leavedesk.core.exceptions import NotFoundError
from leavedesk.integrations.graph import GraphClient, GraphError
from leavedesk.models.user import User
from leavedesk.schemas.user import ManagerRead, TeamMemberRead, UserRead
from leavedesk.services.absences import AbsenceService

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=UserRead)
async def read_me(user: User = Depends(get_current_active_user)) -> User:
    return user


@router.get("/me/manager", response_model=ManagerRead)
async def read_my_manager(
    db: AsyncSession = Depends(get_db),
    graph: Optional[GraphClient] = Depends(get_graph_client),
    user: User = Depends(get_current_active_user),
) -> ManagerRead:
    """Manager from the local directory copy, else asked from Graph."""
    manager = await AbsenceService(db).manager_of(user)
    if manager is not None:
        return ManagerRead(id=manager.entra_id, name=manager.name, email=manager.email, source="local")

    if graph is not None:
        try:
            remote = await graph.get_user_manager(user.entra_id)
        except GraphError as exc:
            logger.warning("Manager lookup for %s failed: %s", user.email, exc)
            remote = None
        if remote:
            return ManagerRead(
                id=remote.get("id"),
                name=remote.get("displayName"),
                email=remote.get("mail"),
                source="directory",
            )
    raise NotFoundError("No manager found")


@router.get("/me/team", response_model=list[TeamMemberRead])
async def read_my_team(
    db: AsyncSession = Depends(get_db),
    graph: Optional[GraphClient] = Depends(get_graph_client),
    manager: User = Depends(require_manager),
) -> list[TeamMemberRead]:
    """Direct reports known locally, plus any only the directory knows about."""
    team = [
        TeamMemberRead(id=u.entra_id, name=u.name, email=u.email, department=u.department, source="local")
        for u in await AbsenceService(db).direct_reports(manager)
    ]
    if graph is None:
        return team

    try:
        remote = await graph.get_direct_reports(manager.entra_id)
    except GraphError as exc:
        logger.warning("Direct reports lookup for %s failed: %s", manager.email, exc)
        return team

    known = {m.id for m in team} | {m.email.lower() for m in team if m.email}
    for entry in remote:
        mail = (entry.get("mail") or "").lower()
        if entry.get("id") in known or (mail and mail in known):
            continue
        team.append(TeamMemberRead(
            id=entry.get("id"),
            name=entry.get("displayName"),
            email=entry.get("mail"),
            source="directory",
        ))
    return team
