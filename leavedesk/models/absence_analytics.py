"""
AbsenceAnalytics model: cached analytics snapshot per window.

One row per (year, month, department). ``month = 0`` stands for the full
year and ``department = ""`` for the whole company, so the unique
constraint also covers the company-wide rows.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from leavedesk.db.base import Base


class AbsenceAnalytics(Base):
    __tablename__ = "absence_analytics"
    __table_args__ = (
        UniqueConstraint("year", "month", "department", name="uq_analytics_window"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    year: int = Column(Integer, nullable=False, index=True)  # type: ignore[assignment]
    month: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    department: str = Column(String(100), nullable=False, default="")  # type: ignore[assignment]
    payload: dict = Column(JSON, nullable=False)  # type: ignore[assignment]
    computed_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
