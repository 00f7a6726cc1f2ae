"""
Working days, German public holidays and bridge days.

Everything in here is pure: no I/O, no clock access unless a function
explicitly falls back to ``date.today()`` when no reference day is given.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Union

REGIONS: dict[str, str] = {
    "BW": "Baden-Württemberg",
    "BY": "Bayern",
    "BE": "Berlin",
    "BB": "Brandenburg",
    "HB": "Bremen",
    "HH": "Hamburg",
    "HE": "Hessen",
    "MV": "Mecklenburg-Vorpommern",
    "NI": "Niedersachsen",
    "NW": "Nordrhein-Westfalen",
    "RP": "Rheinland-Pfalz",
    "SL": "Saarland",
    "SN": "Sachsen",
    "ST": "Sachsen-Anhalt",
    "SH": "Schleswig-Holstein",
    "TH": "Thüringen",
}

ALL_REGIONS = "all"


@dataclass(frozen=True)
class Holiday:
    date: date
    name: str
    states: Union[str, tuple[str, ...]]
    is_national_holiday: bool

    def applies_to(self, region: Optional[str]) -> bool:
        if self.states == ALL_REGIONS:
            return True
        return region is not None and region in self.states


@dataclass(frozen=True)
class BridgeDay:
    date: date
    holiday: Holiday
    position: str  # before | after
    saving_days: int

    @property
    def reason(self) -> str:
        when = "vor" if self.position == "before" else "nach"
        return f"Brückentag {when} Feiertag ({self.holiday.name}, {format_date(self.holiday.date)})"


@dataclass(frozen=True)
class VacationSuggestion:
    start_date: date
    end_date: date
    total_days: int
    reason: str


# ── Formatting ──────────────────────────────────────────────────────
def format_date(day: date) -> str:
    return day.strftime("%d.%m.%Y")


def format_date_range(start: date, end: date) -> str:
    if start == end:
        return format_date(start)
    return f"{format_date(start)} - {format_date(end)}"


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def iter_days(start: date, end: date):
    """Yield every calendar day in ``[start, end]``."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


# ── Working days ────────────────────────────────────────────────────
def working_days_between(start: date, end: date, is_half_day: bool = False) -> float:
    """Count Monday–Friday days in the inclusive range.

    Public holidays are counted like any other weekday. A half-day request
    always costs 0.5, whatever the range.
    """
    if is_half_day:
        return 0.5
    return float(sum(1 for day in iter_days(start, end) if not is_weekend(day)))


# ── Holidays ────────────────────────────────────────────────────────
def easter_sunday(year: int) -> date:
    """Easter Sunday for *year* (Gauss / anonymous Gregorian algorithm)."""
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return date(year, month, day)


def _all_holidays(year: int) -> list[Holiday]:
    easter = easter_sunday(year)

    def national(day: date, name: str) -> Holiday:
        return Holiday(date=day, name=name, states=ALL_REGIONS, is_national_holiday=True)

    def regional(day: date, name: str, *states: str) -> Holiday:
        return Holiday(date=day, name=name, states=tuple(states), is_national_holiday=False)

    return [
        national(date(year, 1, 1), "Neujahr"),
        national(easter - timedelta(days=2), "Karfreitag"),
        national(easter + timedelta(days=1), "Ostermontag"),
        national(date(year, 5, 1), "Tag der Arbeit"),
        national(easter + timedelta(days=39), "Christi Himmelfahrt"),
        national(easter + timedelta(days=50), "Pfingstmontag"),
        national(date(year, 10, 3), "Tag der Deutschen Einheit"),
        national(date(year, 12, 25), "1. Weihnachtsfeiertag"),
        national(date(year, 12, 26), "2. Weihnachtsfeiertag"),
        regional(date(year, 1, 6), "Heilige Drei Könige", "BW", "BY", "ST"),
        regional(date(year, 3, 8), "Internationaler Frauentag", "BE", "MV"),
        regional(easter + timedelta(days=60), "Fronleichnam", "BW", "BY", "HE", "NW", "RP", "SL"),
        # Only observed in Augsburg; listed for the whole state.
        regional(date(year, 8, 8), "Augsburger Friedensfest", "BY"),
        regional(date(year, 8, 15), "Mariä Himmelfahrt", "SL"),
        regional(date(year, 9, 20), "Weltkindertag", "TH"),
        regional(
            date(year, 10, 31),
            "Reformationstag",
            "BB", "HB", "HH", "MV", "NI", "SN", "ST", "SH", "TH",
        ),
        regional(date(year, 11, 1), "Allerheiligen", "BW", "BY", "NW", "RP", "SL"),
        regional(date(year, 11, 18), "Buß- und Bettag", "SN"),
    ]


def holidays_for_year(year: int, region: Optional[str] = None) -> list[Holiday]:
    """National holidays plus the regional overlay for *region*.

    Without a region only the national holidays are returned; an unknown
    region code contributes no regional holidays.
    """
    return [h for h in _all_holidays(year) if h.applies_to(region)]


def upcoming_holidays(
    region: Optional[str] = None,
    horizon_days: int = 90,
    today: Optional[date] = None,
) -> list[Holiday]:
    """Holidays in ``[today, today + horizon_days)``, earliest first."""
    today = today or date.today()
    limit = today + timedelta(days=horizon_days)
    candidates = holidays_for_year(today.year, region) + holidays_for_year(today.year + 1, region)
    return sorted(
        (h for h in candidates if today <= h.date < limit),
        key=lambda h: h.date,
    )


def find_holiday(day: date, region: Optional[str] = None) -> Optional[Holiday]:
    return next((h for h in holidays_for_year(day.year, region) if h.date == day), None)


def is_holiday(day: date, region: Optional[str] = None) -> bool:
    return find_holiday(day, region) is not None


def days_until_next_holiday(
    region: Optional[str] = None,
    today: Optional[date] = None,
) -> Optional[tuple[Holiday, int]]:
    today = today or date.today()
    upcoming = upcoming_holidays(region, 365, today=today)
    if not upcoming:
        return None
    return upcoming[0], (upcoming[0].date - today).days


# ── Bridge days ─────────────────────────────────────────────────────
def _adjacent_weekend_days(day: date, step: int) -> int:
    """Count consecutive weekend days next to *day* walking in *step* direction."""
    count = 0
    current = day + timedelta(days=step)
    while is_weekend(current):
        count += 1
        current += timedelta(days=step)
    return count


def detect_bridge_days(year: int, region: Optional[str] = None) -> list[BridgeDay]:
    """Working days next to a holiday that turn it into a longer break.

    The day before a holiday links to the weekend before it, the day after a
    holiday to the weekend after it; ``saving_days`` is the size of that
    weekend. Candidates are suggestions only.
    """
    holidays = holidays_for_year(year, region)
    holiday_dates = {h.date for h in holidays}
    found: dict[date, BridgeDay] = {}

    for holiday in holidays:
        for position, step in (("before", -1), ("after", 1)):
            candidate = holiday.date + timedelta(days=step)
            if candidate.year != year or is_weekend(candidate) or candidate in holiday_dates:
                continue
            bridge = BridgeDay(
                date=candidate,
                holiday=holiday,
                position=position,
                saving_days=_adjacent_weekend_days(candidate, step),
            )
            existing = found.get(candidate)
            if existing is None or bridge.saving_days > existing.saving_days:
                found[candidate] = bridge

    return sorted(found.values(), key=lambda b: b.date)


def suggest_vacation_periods(
    year: int,
    region: Optional[str] = None,
    available_days: float = 3,
) -> list[VacationSuggestion]:
    """Suggest single bridge days with the biggest weekend payoff."""
    bridges = [b for b in detect_bridge_days(year, region) if b.saving_days > 0]
    bridges.sort(key=lambda b: (-b.saving_days, b.date))
    limit = min(3, int(available_days))
    return [
        VacationSuggestion(
            start_date=b.date,
            end_date=b.date,
            total_days=1,
            reason=f"{b.reason} - spart {b.saving_days} Wochenendtage",
        )
        for b in bridges[:limit]
    ]
