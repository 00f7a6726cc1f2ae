"""Pydantic schemas for absences and their auto-reply configuration."""

from __future__ import annotations

import re
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from leavedesk.core.enums import AbsenceStatus, AbsenceType, HalfDayPeriod

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _normalise_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v or v.startswith("@") or v.endswith("@"):
        raise ValueError("Invalid email address")
    return v


# ── Auto-reply ──────────────────────────────────────────────────────
class SubstituteInfo(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str
    phone: str | None = Field(default=None, max_length=20)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalise_email(v)


class AutoReplyRecipients(BaseModel):
    internal: bool = True
    external: bool = True


class AutoReplyTiming(BaseModel):
    activate_immediately: bool = False
    scheduled_date: date | None = None
    scheduled_time: str = "00:00"

    @field_validator("scheduled_time")
    @classmethod
    def _time(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError("scheduled_time must be HH:MM")
        return v


class AutoReplyMessages(BaseModel):
    internal: str
    external: str


class AutoReplyConfig(BaseModel):
    """Out-of-office configuration stored with an absence.

    When ``enabled`` is false nothing else is interpreted.
    """

    enabled: bool = True
    has_substitute: bool = False
    substitute_info: SubstituteInfo | None = None
    recipients: AutoReplyRecipients = Field(default_factory=AutoReplyRecipients)
    timing: AutoReplyTiming = Field(default_factory=AutoReplyTiming)
    generated_message: AutoReplyMessages | None = None

    @model_validator(mode="after")
    def _substitute_required(self) -> "AutoReplyConfig":
        if self.enabled and self.has_substitute and self.substitute_info is None:
            raise ValueError("substitute_info (name, email) is required when has_substitute is set")
        return self


class AutoReplySettingsIn(BaseModel):
    """Auto-reply input as submitted with a request; omitted fields take defaults."""

    enabled: bool = True
    has_substitute: bool = False
    substitute_info: SubstituteInfo | None = None
    recipients: AutoReplyRecipients | None = None
    timing: AutoReplyTiming | None = None


# ── Absence ─────────────────────────────────────────────────────────
class _AbsenceDates(BaseModel):
    start_date: date
    end_date: date
    is_half_day: bool = False
    half_day_period: HalfDayPeriod | None = None

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        if self.half_day_period is not None and not self.is_half_day:
            raise ValueError("half_day_period is only allowed for half-day absences")
        return self


class AbsenceCreate(_AbsenceDates):
    type: AbsenceType
    reason: str | None = Field(default=None, max_length=500)
    substitute_email: str | None = None
    substitute_tasks: str | None = Field(default=None, max_length=1000)
    auto_reply_settings: AutoReplySettingsIn | None = None

    @field_validator("substitute_email")
    @classmethod
    def _substitute_email(cls, v: str | None) -> str | None:
        return _normalise_email(v) if v else None


class AbsenceUpdate(BaseModel):
    """Fields an owner may still change while the request is pending."""

    start_date: date | None = None
    end_date: date | None = None
    is_half_day: bool | None = None
    half_day_period: HalfDayPeriod | None = None
    reason: str | None = Field(default=None, max_length=500)
    substitute_email: str | None = None
    substitute_tasks: str | None = Field(default=None, max_length=1000)
    auto_reply_settings: AutoReplySettingsIn | None = None

    model_config = {"extra": "forbid"}

    @field_validator("substitute_email")
    @classmethod
    def _substitute_email(cls, v: str | None) -> str | None:
        return _normalise_email(v) if v else None


class AbsenceRead(BaseModel):
    id: int
    user_id: int
    user_email: str
    user_name: str
    type: AbsenceType
    start_date: date
    end_date: date
    is_half_day: bool
    half_day_period: HalfDayPeriod | None = None
    total_days: float
    status: AbsenceStatus
    reason: str | None = None
    approved_by: str | None = None
    approved_by_email: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    substitute_email: str | None = None
    substitute_name: str | None = None
    substitute_tasks: str | None = None
    auto_reply: AutoReplyConfig | None = None
    conflict_warning: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


# ── Conflicts ───────────────────────────────────────────────────────
class ConflictRead(BaseModel):
    has_conflict: bool
    concurrent_absences: int
    max_allowed: int
    conflicting_users: list[str]
    message: str = ""


class AbsenceCreated(BaseModel):
    absence: AbsenceRead
    conflict: ConflictRead


class AbsenceActionResponse(BaseModel):
    absence: AbsenceRead
    message: str
    integrations: dict[str, bool] = {}


# ── Stats ───────────────────────────────────────────────────────────
class VacationBalance(BaseModel):
    total: float
    used: float
    remaining: float
    carry_over: float


class AbsenceStatsResponse(BaseModel):
    total: int
    pending: int
    approved: int
    vacation_days: VacationBalance
    upcoming_absences: list[AbsenceRead]
