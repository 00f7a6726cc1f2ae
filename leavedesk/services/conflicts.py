"""Concurrent-absence conflict detection (advisory only)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from leavedesk.core.enums import ACTIVE_STATUSES


@dataclass(frozen=True)
class ConflictCheck:
    has_conflict: bool
    concurrent_absences: int
    max_allowed: int
    conflicting_users: list[str] = field(default_factory=list)
    conflicting_absences: list[Any] = field(default_factory=list)


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Inclusive day ranges intersect."""
    return start_a <= end_b and start_b <= end_a


def check_absence_conflicts(
    start_date: date,
    end_date: date,
    team_absences: Iterable[Any],
    max_concurrent_absences: int = 3,
    exclude_user_id: Optional[int] = None,
) -> ConflictCheck:
    """Would one more absence over ``[start_date, end_date]`` exceed the team limit?

    Only pending and approved absences occupy a slot. The candidate itself
    counts as one, so the result is a conflict when overlaps + 1 > max.
    """
    overlapping = [
        absence
        for absence in team_absences
        if absence.status in ACTIVE_STATUSES
        and not (exclude_user_id is not None and absence.user_id == exclude_user_id)
        and ranges_overlap(start_date, end_date, absence.start_date, absence.end_date)
    ]
    concurrent = len(overlapping) + 1
    return ConflictCheck(
        has_conflict=concurrent > max_concurrent_absences,
        concurrent_absences=concurrent,
        max_allowed=max_concurrent_absences,
        conflicting_users=[a.user_name for a in overlapping],
        conflicting_absences=overlapping,
    )


def conflict_warning_message(check: ConflictCheck) -> str:
    if not check.has_conflict:
        return ""
    return (
        f"Warnung: {check.concurrent_absences} Mitarbeiter sind gleichzeitig abwesend "
        f"(Maximum: {check.max_allowed}). Betroffene: {', '.join(check.conflicting_users)}"
    )
