"""
Absence model: one vacation / sick / training / parental request.

Rows are never deleted; cancellation is a terminal status. The auto-reply
configuration lives inline as JSON and has no identity of its own.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (JSON, Boolean, Column, Date, DateTime, Float,
                        ForeignKey, Index, Integer, String)

from leavedesk.db.base import Base


class Absence(Base):
    __tablename__ = "absences"
    __table_args__ = (
        Index("ix_absence_user_start", "user_id", "start_date"),
        Index("ix_absence_status_start", "status", "start_date"),
        Index("ix_absence_range", "start_date", "end_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    user_email: str = Column(String(320), nullable=False, index=True)  # type: ignore[assignment]
    user_name: str = Column(String(200), nullable=False)  # type: ignore[assignment]

    type: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # vacation | sick | training | parental
    start_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    end_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    is_half_day: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    half_day_period: str | None = Column(String(10), nullable=True)  # type: ignore[assignment]
    total_days: float = Column(Float, nullable=False)  # type: ignore[assignment]

    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="pending",
        server_default="pending",
        index=True,
    )  # pending | approved | rejected | cancelled
    reason: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    approved_by: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    approved_by_email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    approved_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    rejection_reason: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    substitute_email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    substitute_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    substitute_tasks: str | None = Column(String(1000), nullable=True)  # type: ignore[assignment]

    auto_reply: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    conflict_warning: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
