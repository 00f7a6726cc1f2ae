"""Pydantic schemas for the signed-in user and their manager."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


class UserRead(BaseModel):
    id: int
    entra_id: str
    email: str
    name: str
    first_name: str | None = None
    last_name: str | None = None
    department: str | None = None
    job_title: str | None = None
    manager_id: str | None = None
    manager_email: str | None = None
    role: str
    vacation_total: float
    vacation_used: float
    vacation_remaining: float
    vacation_carry_over: float
    start_date: date | None = None
    is_active: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ManagerRead(BaseModel):
    """Manager as resolved locally, or from the directory when unknown here."""

    id: str | None = None
    name: str | None = None
    email: str | None = None
    source: str  # local | directory


class TeamMemberRead(BaseModel):
    id: str | None = None
    name: str | None = None
    email: str | None = None
    department: str | None = None
    source: str  # local | directory
