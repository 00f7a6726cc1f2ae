"""
Absence analytics: window statistics, department breakdown, sick-leave
trends and a per-window snapshot cache.

A window is a calendar month, or the whole year when no month is given.
An absence belongs to a window when its day range overlaps it, and only
its days inside the window are added to the window's totals. Counts,
days, type breakdown and peak days consider pending and approved absences
only; the status breakdown counts every status.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.config import settings
from leavedesk.core.enums import ACTIVE_STATUSES, AbsenceStatus, AbsenceType
from leavedesk.core.exceptions import ValidationError
from leavedesk.models.absence import Absence
from leavedesk.models.absence_analytics import AbsenceAnalytics
from leavedesk.models.user import User
from leavedesk.schemas.analytics import (AnalyticsSnapshot, DepartmentStat,
                                         PeakDay, PeriodComparison,
                                         SickLeaveTrend)
from leavedesk.services.calendar import iter_days, working_days_between

logger = logging.getLogger(__name__)

PEAK_DAY_LIMIT = 5
TREND_THRESHOLD_PERCENT = 10
DEFAULT_ENTITLEMENT = 30

MONTH_NAMES = (
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
)


# ── Pure helpers ────────────────────────────────────────────────────
@dataclass
class AbsenceSummary:
    total_absences: int = 0
    total_days: float = 0.0
    average_duration: float = 0.0
    sick_days: float = 0.0
    vacation_days: float = 0.0
    by_type: dict[str, int] = field(default_factory=lambda: {t.value: 0 for t in AbsenceType})


def _ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalise a potentially-naive timestamp to UTC-aware."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def period_bounds(year: int, month: Optional[int] = None) -> tuple[date, date]:
    """First and last day of the month, or of the year when *month* is None."""
    if month is None:
        return date(year, 1, 1), date(year, 12, 31)
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    first = date(year, month, 1)
    next_first = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return first, next_first - timedelta(days=1)


def previous_period(year: int, month: Optional[int] = None) -> tuple[int, Optional[int]]:
    if month is None:
        return year - 1, None
    if month == 1:
        return year - 1, 12
    return year, month - 1


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def days_in_window(absence: Absence, start: Optional[date] = None, end: Optional[date] = None) -> float:
    """Days of *absence* that fall inside ``[start, end]``.

    A fully contained absence keeps its stored day count; one crossing the
    window edge is recounted over the clipped range.
    """
    first = max(absence.start_date, start) if start else absence.start_date
    last = min(absence.end_date, end) if end else absence.end_date
    if first == absence.start_date and last == absence.end_date:
        return absence.total_days or 0
    return working_days_between(first, last, absence.is_half_day)


def summarize_absences(
    absences: Iterable[Absence],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> AbsenceSummary:
    summary = AbsenceSummary()
    for absence in absences:
        days = days_in_window(absence, start, end)
        summary.total_absences += 1
        summary.total_days += days
        summary.by_type[absence.type] = summary.by_type.get(absence.type, 0) + 1
        if absence.type == AbsenceType.SICK.value:
            summary.sick_days += days
        elif absence.type == AbsenceType.VACATION.value:
            summary.vacation_days += days
    summary.average_duration = round(_ratio(summary.total_days, summary.total_absences), 1)
    return summary


def find_peak_days(
    absences: Iterable[Absence],
    start: Optional[date] = None,
    end: Optional[date] = None,
    limit: int = PEAK_DAY_LIMIT,
) -> list[PeakDay]:
    """Days covered by the most absences, busiest first.

    Every absence is expanded into its calendar days; with *start*/*end*
    only days inside that window are tallied. Ties go to the earlier day.
    """
    tally: Counter[date] = Counter()
    for absence in absences:
        first = max(absence.start_date, start) if start else absence.start_date
        last = min(absence.end_date, end) if end else absence.end_date
        tally.update(iter_days(first, last))
    ranked = sorted(tally.items(), key=lambda item: (-item[1], item[0]))
    return [PeakDay(day=day, absence_count=count) for day, count in ranked[:limit]]


def calculate_vacation_score(users: Iterable[User]) -> int:
    """Used vacation as a share of total entitlement, 0-100."""
    entitlement = 0.0
    used = 0.0
    for user in users:
        entitlement += user.vacation_total or DEFAULT_ENTITLEMENT
        used += user.vacation_used or 0
    return min(round(_ratio(used, entitlement) * 100), 100)


def classify_trend(current: float, previous: Optional[float]) -> tuple[str, int]:
    """Trend label and rounded percentage change against the previous value."""
    if previous is None or previous <= 0:
        return "stable", 0
    change = round((current - previous) / previous * 100)
    if change > TREND_THRESHOLD_PERCENT:
        return "up", change
    if change < -TREND_THRESHOLD_PERCENT:
        return "down", change
    return "stable", change


def compare_periods(current: AbsenceSummary, previous: AbsenceSummary) -> PeriodComparison:
    total_change = current.total_absences - previous.total_absences
    return PeriodComparison(
        total_change=total_change,
        percentage_change=round(_ratio(total_change, previous.total_absences) * 100, 1),
        sick_leave_change=current.sick_days - previous.sick_days,
    )


# ── Service ─────────────────────────────────────────────────────────
class AnalyticsService:
    def __init__(self, db: AsyncSession, cache_ttl: Optional[timedelta] = None) -> None:
        self.db = db
        self.cache_ttl = cache_ttl or timedelta(hours=settings.ANALYTICS_CACHE_TTL_HOURS)

    async def _absences_in(
        self,
        start: date,
        end: date,
        department: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        absence_type: Optional[str] = None,
    ) -> list[Absence]:
        stmt = select(Absence).where(Absence.start_date <= end, Absence.end_date >= start)
        if statuses is not None:
            stmt = stmt.where(Absence.status.in_(tuple(statuses)))
        if absence_type is not None:
            stmt = stmt.where(Absence.type == absence_type)
        if department:
            stmt = stmt.join(User, Absence.user_id == User.id).where(
                User.department == department,
                User.is_active.is_(True),
            )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _active_users(self, department: Optional[str] = None) -> list[User]:
        stmt = select(User).where(User.is_active.is_(True))
        if department:
            stmt = stmt.where(User.department == department)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def calculate(
        self,
        year: int,
        month: Optional[int] = None,
        department: Optional[str] = None,
    ) -> AnalyticsSnapshot:
        start, end = period_bounds(year, month)
        absences = await self._absences_in(start, end, department)
        active = [a for a in absences if a.status in ACTIVE_STATUSES]
        summary = summarize_absences(active, start, end)

        by_status = {s.value: 0 for s in AbsenceStatus}
        for absence in absences:
            by_status[absence.status] = by_status.get(absence.status, 0) + 1

        prev_start, prev_end = period_bounds(*previous_period(year, month))
        previous = summarize_absences(
            await self._absences_in(prev_start, prev_end, department, statuses=ACTIVE_STATUSES),
            prev_start,
            prev_end,
        )

        snapshot = AnalyticsSnapshot(
            year=year,
            month=month,
            department=department or None,
            total_absences=summary.total_absences,
            total_days=summary.total_days,
            average_duration=summary.average_duration,
            by_type=summary.by_type,
            by_status=by_status,
            compared_to_previous=compare_periods(summary, previous),
            peak_days=find_peak_days(active, start, end),
            vacation_score=calculate_vacation_score(await self._active_users(department)),
            computed_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Analytics computed for %s/%s (%s): %s absences",
            year,
            month or "-",
            department or "all",
            snapshot.total_absences,
        )
        return snapshot

    # ── Cache ───────────────────────────────────────────────────────
    async def _cached_row(self, year: int, month: int, department: str) -> Optional[AbsenceAnalytics]:
        result = await self.db.execute(
            select(AbsenceAnalytics).where(
                AbsenceAnalytics.year == year,
                AbsenceAnalytics.month == month,
                AbsenceAnalytics.department == department,
            )
        )
        return result.scalar_one_or_none()

    def _is_fresh(self, row: AbsenceAnalytics, now: datetime) -> bool:
        computed_at = _ensure_utc(row.computed_at)
        return computed_at is not None and now - computed_at < self.cache_ttl

    async def get_cached(
        self,
        year: int,
        month: Optional[int] = None,
        department: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AnalyticsSnapshot:
        """Serve a snapshot younger than the cache TTL, else recompute and store it."""
        key = (year, month or 0, department or "")
        now = _ensure_utc(now) or datetime.now(timezone.utc)

        row = await self._cached_row(*key)
        if row is not None and self._is_fresh(row, now):
            logger.debug("Analytics cache hit for %s", key)
            return AnalyticsSnapshot.model_validate(row.payload)

        snapshot = await self.calculate(year, month, department)
        payload = snapshot.model_dump(mode="json")
        if row is None:
            self.db.add(AbsenceAnalytics(
                year=key[0], month=key[1], department=key[2],
                payload=payload, computed_at=snapshot.computed_at,
            ))
        else:
            row.payload = payload
            row.computed_at = snapshot.computed_at
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request stored the same window first.
            await self.db.rollback()
            row = await self._cached_row(*key)
            if row is None:
                raise
            row.payload = payload
            row.computed_at = snapshot.computed_at
            await self.db.commit()
        logger.info("Analytics cache refreshed for %s", key)
        return AnalyticsSnapshot.model_validate(payload)

    # ── Variants ────────────────────────────────────────────────────
    async def by_department(self, year: int, month: Optional[int] = None) -> list[DepartmentStat]:
        start, end = period_bounds(year, month)
        users = [u for u in await self._active_users() if u.department]
        members: dict[str, list[User]] = {}
        for user in users:
            members.setdefault(user.department, []).append(user)

        department_of = {u.id: u.department for u in users}
        grouped: dict[str, list[Absence]] = {name: [] for name in members}
        for absence in await self._absences_in(start, end, statuses=ACTIVE_STATUSES):
            name = department_of.get(absence.user_id)
            if name is not None:
                grouped[name].append(absence)

        stats = []
        for name, team in members.items():
            summary = summarize_absences(grouped[name], start, end)
            entitlement = sum(u.vacation_total or DEFAULT_ENTITLEMENT for u in team)
            stats.append(DepartmentStat(
                department=name,
                total_absences=summary.total_absences,
                total_days=summary.total_days,
                average_duration=summary.average_duration,
                vacation_rate=round(_ratio(summary.vacation_days, entitlement) * 100),
                sick_leave_rate=round(_ratio(summary.sick_days, len(team)), 1),
                employee_count=len(team),
            ))
        return sorted(stats, key=lambda s: (-s.total_absences, s.department))

    async def sick_leave_trends(self, months: int = 12, today: Optional[date] = None) -> list[SickLeaveTrend]:
        """Sick days per month for the last *months* months, ending with the current one.

        Days are counted inside each month only, so an absence spanning a
        month boundary is split between the two.
        """
        if months < 1:
            raise ValidationError("months must be at least 1")
        today = today or date.today()
        first_year, first_month = shift_month(today.year, today.month, -(months - 1))
        range_start, _ = period_bounds(first_year, first_month)
        range_end = period_bounds(today.year, today.month)[1]
        sick = await self._absences_in(
            range_start,
            range_end,
            statuses=ACTIVE_STATUSES,
            absence_type=AbsenceType.SICK.value,
        )

        trends: list[SickLeaveTrend] = []
        previous: Optional[float] = None
        for offset in range(months):
            year, month = shift_month(first_year, first_month, offset)
            month_start, month_end = period_bounds(year, month)
            sick_days = sum(
                days_in_window(a, month_start, month_end)
                for a in sick
                if a.start_date <= month_end and a.end_date >= month_start
            )
            trend, change = classify_trend(sick_days, previous)
            trends.append(SickLeaveTrend(
                year=year,
                month=month,
                month_name=MONTH_NAMES[month - 1],
                sick_days=sick_days,
                trend=trend,
                percentage_change=change,
            ))
            previous = sick_days
        return trends
