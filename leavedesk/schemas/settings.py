"""Pydantic schemas for company settings."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from leavedesk.services.calendar import REGIONS


class CompanySettingsRead(BaseModel):
    company_name: str
    state: str
    max_concurrent_absences: int
    vacation_days_per_year: int
    carry_over_days: int
    require_approval: bool
    auto_approve_after_days: int
    notify_manager_on_request: bool
    notify_user_on_approval: bool
    working_days: list[int]
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class CompanySettingsUpdate(BaseModel):
    """Whitelisted, individually validated settings fields."""

    company_name: str | None = Field(default=None, min_length=1, max_length=200)
    state: str | None = None
    max_concurrent_absences: int | None = Field(default=None, ge=1)
    vacation_days_per_year: int | None = Field(default=None, ge=20, le=40)
    carry_over_days: int | None = Field(default=None, ge=0, le=10)
    require_approval: bool | None = None
    auto_approve_after_days: int | None = Field(default=None, ge=0)
    notify_manager_on_request: bool | None = None
    notify_user_on_approval: bool | None = None
    working_days: list[int] | None = None

    model_config = {"extra": "forbid"}

    @field_validator("state")
    @classmethod
    def _state(cls, v: str | None) -> str | None:
        if v is not None and v not in REGIONS:
            raise ValueError(f"Invalid state code. Must be one of: {sorted(REGIONS)}")
        return v

    @field_validator("working_days")
    @classmethod
    def _working_days(cls, v: list[int] | None) -> list[int] | None:
        if v is not None and not all(0 <= day <= 6 for day in v):
            raise ValueError("Working days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v)) if v is not None else v
