"""
Company policy: the singleton settings row and its typed view.

The settings row is created with defaults on first access. Everything
outside this module reads policy through ``CompanyPolicy``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.config import settings as app_settings
from leavedesk.models.company_settings import CompanySettings
from leavedesk.schemas.settings import CompanySettingsUpdate
from leavedesk.services.calendar import REGIONS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompanyPolicy:
    company_name: str
    region: str
    max_concurrent_absences: int
    vacation_days_per_year: int
    carry_over_days: int
    require_approval: bool
    notify_manager_on_request: bool
    notify_user_on_approval: bool
    working_days: tuple[int, ...]


def resolve_policy(row: CompanySettings | None) -> CompanyPolicy:
    """Build the policy from a settings row, falling back to configured defaults."""
    if row is None:
        return CompanyPolicy(
            company_name=app_settings.DEFAULT_COMPANY_NAME,
            region=app_settings.DEFAULT_STATE,
            max_concurrent_absences=app_settings.DEFAULT_MAX_CONCURRENT_ABSENCES,
            vacation_days_per_year=app_settings.DEFAULT_VACATION_DAYS,
            carry_over_days=5,
            require_approval=True,
            notify_manager_on_request=True,
            notify_user_on_approval=True,
            working_days=(1, 2, 3, 4, 5),
        )
    region = row.state if row.state in REGIONS else app_settings.DEFAULT_STATE
    return CompanyPolicy(
        company_name=row.company_name,
        region=region,
        max_concurrent_absences=max(1, row.max_concurrent_absences or 1),
        vacation_days_per_year=row.vacation_days_per_year,
        carry_over_days=row.carry_over_days,
        require_approval=row.require_approval,
        notify_manager_on_request=row.notify_manager_on_request,
        notify_user_on_approval=row.notify_user_on_approval,
        working_days=tuple(row.working_days or (1, 2, 3, 4, 5)),
    )


async def get_or_create_settings(db: AsyncSession) -> CompanySettings:
    """Fetch the singleton settings row, creating it with defaults if absent."""
    result = await db.execute(select(CompanySettings).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        row = CompanySettings(
            id=1,
            company_name=app_settings.DEFAULT_COMPANY_NAME,
            state=app_settings.DEFAULT_STATE,
            max_concurrent_absences=app_settings.DEFAULT_MAX_CONCURRENT_ABSENCES,
            vacation_days_per_year=app_settings.DEFAULT_VACATION_DAYS,
        )
        db.add(row)
        await db.commit()
        await db.refresh(row)
        logger.info("Created default company settings")
    return row


async def load_policy(db: AsyncSession) -> CompanyPolicy:
    return resolve_policy(await get_or_create_settings(db))


async def update_settings(db: AsyncSession, body: CompanySettingsUpdate) -> CompanySettings:
    row = await get_or_create_settings(db)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(row, field, value)
    await db.commit()
    await db.refresh(row)
    logger.info("Company settings updated: %s", changes)
    return row
