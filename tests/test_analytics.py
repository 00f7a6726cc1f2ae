"""Tests for the analytics aggregator and its snapshot cache."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.exceptions import ValidationError
from leavedesk.models.absence_analytics import AbsenceAnalytics
from leavedesk.services.analytics import (AnalyticsService,
                                          calculate_vacation_score,
                                          classify_trend, find_peak_days,
                                          period_bounds, previous_period,
                                          summarize_absences)


@dataclass
class Entry:
    start_date: date
    end_date: date
    type: str = "vacation"
    total_days: float = 1.0


@dataclass
class Member:
    vacation_total: float
    vacation_used: float


# ── Pure helpers ────────────────────────────────────────────────────
def test_period_bounds():
    assert period_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert period_bounds(2024, 12) == (date(2024, 12, 1), date(2024, 12, 31))
    assert period_bounds(2024) == (date(2024, 1, 1), date(2024, 12, 31))
    with pytest.raises(ValidationError):
        period_bounds(2024, 13)


def test_previous_period():
    assert previous_period(2024, 1) == (2023, 12)
    assert previous_period(2024, 6) == (2024, 5)
    assert previous_period(2024) == (2023, None)


def test_peak_days_count_overlaps():
    """Two absences covering 2024-06-10 give that day a count of 2."""
    peaks = find_peak_days([
        Entry(date(2024, 6, 10), date(2024, 6, 12)),
        Entry(date(2024, 6, 7), date(2024, 6, 10)),
    ])
    assert peaks[0].day == date(2024, 6, 10)
    assert peaks[0].absence_count == 2
    assert len(peaks) == 5


def test_peak_days_clipped_to_window():
    peaks = find_peak_days([Entry(date(2024, 5, 30), date(2024, 6, 2))], date(2024, 6, 1), date(2024, 6, 30))
    assert [p.day for p in peaks] == [date(2024, 6, 1), date(2024, 6, 2)]


def test_empty_input_yields_zeros():
    summary = summarize_absences([])
    assert summary.total_absences == 0
    assert summary.total_days == 0
    assert summary.average_duration == 0
    assert find_peak_days([]) == []
    assert calculate_vacation_score([]) == 0


def test_vacation_score_is_clamped():
    assert calculate_vacation_score([Member(30, 15), Member(30, 0)]) == 25
    assert calculate_vacation_score([Member(30, 45)]) == 100
    # A missing entitlement counts as the default 30 days.
    assert calculate_vacation_score([Member(0, 3)]) == 10


def test_classify_trend():
    assert classify_trend(115, 100) == ("up", 15)
    assert classify_trend(85, 100) == ("down", -15)
    assert classify_trend(105, 100) == ("stable", 5)
    assert classify_trend(5, 0) == ("stable", 0)
    assert classify_trend(5, None) == ("stable", 0)


# ── Service ─────────────────────────────────────────────────────────
@pytest.fixture
async def june(user_factory, absence_factory):
    anna = await user_factory(department="Engineering", vacation_used=6)
    ben = await user_factory(department="Sales", vacation_used=3)
    await user_factory(department="Ops", vacation_used=30, is_active=False)

    await absence_factory(anna, date(2024, 6, 10), date(2024, 6, 12), total_days=3)
    await absence_factory(ben, date(2024, 6, 10), date(2024, 6, 10), total_days=1, status="pending")
    await absence_factory(anna, date(2024, 6, 20), date(2024, 6, 21), type="sick", total_days=2)
    await absence_factory(ben, date(2024, 6, 3), date(2024, 6, 3), type="training", total_days=1, status="rejected")
    await absence_factory(ben, date(2024, 5, 6), date(2024, 5, 7), type="sick", total_days=2)
    return anna, ben


async def test_empty_window(db_session: AsyncSession):
    snapshot = await AnalyticsService(db_session).calculate(2023, 1)
    assert snapshot.total_absences == 0
    assert snapshot.total_days == 0
    assert snapshot.average_duration == 0
    assert snapshot.vacation_score == 0
    assert snapshot.peak_days == []
    assert snapshot.compared_to_previous.percentage_change == 0


async def test_month_statistics(db_session: AsyncSession, june):
    snapshot = await AnalyticsService(db_session).calculate(2024, 6)
    assert snapshot.total_absences == 3
    assert snapshot.total_days == 6
    assert snapshot.average_duration == 2.0
    assert snapshot.by_type == {"vacation": 2, "sick": 1, "training": 0, "parental": 0}
    assert snapshot.by_status == {"pending": 1, "approved": 2, "rejected": 1, "cancelled": 0}
    assert snapshot.compared_to_previous.total_change == 2
    assert snapshot.compared_to_previous.percentage_change == 200.0
    assert snapshot.compared_to_previous.sick_leave_change == 0
    assert snapshot.peak_days[0].day == date(2024, 6, 10)
    assert snapshot.peak_days[0].absence_count == 2
    assert len(snapshot.peak_days) == 5
    assert snapshot.vacation_score == 15


async def test_department_scope(db_session: AsyncSession, june):
    snapshot = await AnalyticsService(db_session).calculate(2024, 6, "Engineering")
    assert snapshot.total_absences == 2
    assert snapshot.department == "Engineering"
    assert snapshot.vacation_score == 20


async def test_by_department(db_session: AsyncSession, june):
    stats = await AnalyticsService(db_session).by_department(2024, 6)
    assert [s.department for s in stats] == ["Engineering", "Sales"]
    engineering, sales = stats
    assert engineering.total_absences == 2
    assert engineering.total_days == 5
    assert engineering.vacation_rate == 10
    assert engineering.sick_leave_rate == 2.0
    assert engineering.employee_count == 1
    assert sales.total_absences == 1
    assert sales.vacation_rate == 3
    assert sales.sick_leave_rate == 0


async def test_cache_hit_returns_stored_snapshot(db_session: AsyncSession, june):
    """A fresh snapshot is served as stored, without recomputing."""
    service = AnalyticsService(db_session)
    first = await service.get_cached(2024, 6)

    with patch.object(AnalyticsService, "calculate", side_effect=AssertionError("recomputed")):
        second = await service.get_cached(2024, 6)

    assert second.model_dump_json() == first.model_dump_json()


async def test_stale_cache_is_recomputed_in_place(db_session: AsyncSession, june):
    service = AnalyticsService(db_session)
    first = await service.get_cached(2024, 6)
    later = datetime.now(timezone.utc) + timedelta(hours=25)
    second = await service.get_cached(2024, 6, now=later)

    assert second.computed_at > first.computed_at
    assert second.total_absences == first.total_absences
    count = await db_session.execute(select(func.count(AbsenceAnalytics.id)))
    assert count.scalar() == 1


async def test_sick_leave_trends(db_session: AsyncSession, user_factory, absence_factory):
    member = await user_factory()
    await absence_factory(member, date(2024, 4, 8), date(2024, 4, 9), type="sick", total_days=2)
    await absence_factory(member, date(2024, 5, 6), date(2024, 5, 10), type="sick", total_days=5)
    # Spans the month boundary: Friday 31 May and Monday 3 June.
    await absence_factory(member, date(2024, 5, 31), date(2024, 6, 3), type="sick", total_days=2)
    await absence_factory(member, date(2024, 6, 10), date(2024, 6, 10), type="sick", total_days=1, status="cancelled")

    trends = await AnalyticsService(db_session).sick_leave_trends(3, today=date(2024, 6, 15))
    assert [(t.month_name, t.sick_days, t.trend, t.percentage_change) for t in trends] == [
        ("April", 2, "stable", 0),
        ("Mai", 6, "up", 200),
        ("Juni", 1, "down", -83),
    ]


# ── HTTP ────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_analytics_endpoints(async_client: AsyncClient, manager, employee, login_as, june):
    login_as(employee)
    assert (await async_client.get("/api/v1/analytics")).status_code == 403

    login_as(manager)
    resp = await async_client.get("/api/v1/analytics", params={"year": 2024, "month": 6})
    assert resp.status_code == 200
    assert resp.json()["total_absences"] == 3
    assert resp.json()["peak_days"][0] == {"day": "2024-06-10", "absence_count": 2}

    resp = await async_client.get("/api/v1/analytics/departments", params={"year": 2024, "month": 6})
    assert [d["department"] for d in resp.json()] == ["Engineering", "Sales"]

    resp = await async_client.get("/api/v1/analytics/sick-trends", params={"months": 2})
    assert resp.status_code == 200
    assert len(resp.json()) == 2


async def test_month_boundary_days_are_split(db_session: AsyncSession, user_factory, absence_factory):
    """27 May to 7 June 2024 is ten working days, five in each month."""
    member = await user_factory()
    await absence_factory(member, date(2024, 5, 27), date(2024, 6, 7), total_days=10)
    service = AnalyticsService(db_session)

    may = await service.calculate(2024, 5)
    june = await service.calculate(2024, 6)
    year = await service.calculate(2024)
    assert (may.total_absences, may.total_days) == (1, 5)
    assert (june.total_absences, june.total_days) == (1, 5)
    assert year.total_days == 10
    assert june.compared_to_previous.total_change == 0

    stats = await service.by_department(2024, 6)
    assert stats[0].total_days == 5
    assert stats[0].vacation_rate == round(5 / 30 * 100)
