"""Pydantic schemas for absence analytics."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


class PeakDay(BaseModel):
    day: date
    absence_count: int


class PeriodComparison(BaseModel):
    total_change: int = 0
    percentage_change: float = 0.0
    sick_leave_change: float = 0.0


class AnalyticsSnapshot(BaseModel):
    year: int
    month: int | None = None
    department: str | None = None
    total_absences: int = 0
    total_days: float = 0.0
    average_duration: float = 0.0
    by_type: dict[str, int]
    by_status: dict[str, int]
    compared_to_previous: PeriodComparison
    peak_days: list[PeakDay] = []
    vacation_score: int = 0
    computed_at: datetime


class DepartmentStat(BaseModel):
    department: str
    total_absences: int
    total_days: float
    average_duration: float
    vacation_rate: int
    sick_leave_rate: float
    employee_count: int


class SickLeaveTrend(BaseModel):
    year: int
    month: int
    month_name: str
    sick_days: float
    trend: str  # up | down | stable
    percentage_change: int
