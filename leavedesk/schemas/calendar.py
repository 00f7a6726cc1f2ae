"""Pydantic schemas for public holidays and bridge days."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel


class HolidayRead(BaseModel):
    date: date
    name: str
    states: list[str] | str
    is_national_holiday: bool

    model_config = {"from_attributes": True}


class BridgeDayRead(BaseModel):
    date: date
    holiday: HolidayRead
    position: str  # before | after
    saving_days: int
    reason: str

    model_config = {"from_attributes": True}


class VacationSuggestionRead(BaseModel):
    start_date: date
    end_date: date
    total_days: int
    reason: str

    model_config = {"from_attributes": True}


class HolidayCheck(BaseModel):
    date: date
    is_holiday: bool
    is_weekend: bool
    holiday: HolidayRead | None = None


class NextHoliday(BaseModel):
    holiday: HolidayRead
    days_until: int
