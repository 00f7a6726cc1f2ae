"""
Company settings model: singleton table for admin-configurable policy.

Only one row should ever exist. Admins update it via the settings API;
conflict detection and the holiday calendar read it through
``leavedesk.services.policy``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String

from leavedesk.db.base import Base


class CompanySettings(Base):
    __tablename__ = "company_settings"

    id: int = Column(Integer, primary_key=True, default=1)  # type: ignore[assignment]
    company_name: str = Column(String(200), nullable=False, default="Meine Firma")  # type: ignore[assignment]
    state: str = Column(String(2), nullable=False, default="BY")  # type: ignore[assignment]
    max_concurrent_absences: int = Column(Integer, nullable=False, default=3)  # type: ignore[assignment]
    vacation_days_per_year: int = Column(Integer, nullable=False, default=30)  # type: ignore[assignment]
    carry_over_days: int = Column(Integer, nullable=False, default=5)  # type: ignore[assignment]
    require_approval: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    auto_approve_after_days: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    notify_manager_on_request: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    notify_user_on_approval: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    # 0 = Sunday … 6 = Saturday
    working_days: list = Column(JSON, nullable=False, default=lambda: [1, 2, 3, 4, 5])  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
