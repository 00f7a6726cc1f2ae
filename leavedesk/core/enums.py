from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorisation."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


class AbsenceType(str, Enum):
    VACATION = "vacation"
    SICK = "sick"
    TRAINING = "training"
    PARENTAL = "parental"


class AbsenceStatus(str, Enum):
    """Lifecycle states of an absence request.

    ``pending`` is the only state with outgoing approve/reject transitions;
    nothing ever moves back into it.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class HalfDayPeriod(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"


# Statuses that occupy a slot in the team calendar.
ACTIVE_STATUSES = (AbsenceStatus.PENDING.value, AbsenceStatus.APPROVED.value)

ABSENCE_TYPE_LABELS = {
    AbsenceType.VACATION.value: "Urlaub",
    AbsenceType.SICK.value: "Krankheit",
    AbsenceType.TRAINING.value: "Fortbildung",
    AbsenceType.PARENTAL.value: "Elternzeit",
}


def format_absence_type(value: str) -> str:
    return ABSENCE_TYPE_LABELS.get(value, value)


def format_days(days: float) -> str:
    return "1 Tag" if days == 1 else f"{days:g} Tage"
