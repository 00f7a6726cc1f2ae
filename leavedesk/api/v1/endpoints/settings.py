"""
Company settings endpoints: admin-configurable absence policy.

Singleton pattern: only one row in company_settings. GET retrieves it,
PUT updates it. If no row exists, one is created with defaults on first GET.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_current_active_user, get_db, require_admin
from leavedesk.models.company_settings import CompanySettings
from leavedesk.models.user import User
from leavedesk.schemas.settings import CompanySettingsRead, CompanySettingsUpdate
from leavedesk.services import policy

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/company", response_model=CompanySettingsRead)
async def get_company_settings(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> CompanySettings:
    """Current absence policy; readable by every signed-in user."""
    return await policy.get_or_create_settings(db)


@router.put("/company", response_model=CompanySettingsRead)
async def update_company_settings(
    body: CompanySettingsUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> CompanySettings:
    """Update the policy; only the fields sent are changed."""
    return await policy.update_settings(db, body)
