"""
User model: directory identity, role and vacation balance.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, String

from leavedesk.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    entra_id: str = Column(String(64), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    first_name: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    last_name: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    department: str | None = Column(String(100), nullable=True, index=True)  # type: ignore[assignment]
    job_title: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    manager_id: str | None = Column(String(64), nullable=True, index=True)  # type: ignore[assignment]
    manager_email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="employee",
        server_default="employee",
    )  # employee | manager | admin

    # Vacation balance; only the approval of a vacation absence moves `vacation_used`.
    vacation_total: float = Column(Float, nullable=False, default=30, server_default="30")  # type: ignore[assignment]
    vacation_used: float = Column(Float, nullable=False, default=0, server_default="0")  # type: ignore[assignment]
    vacation_carry_over: float = Column(Float, nullable=False, default=0, server_default="0")  # type: ignore[assignment]

    start_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def vacation_remaining(self) -> float:
        return (self.vacation_total or 0) - (self.vacation_used or 0)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_manager(self) -> bool:
        return self.role in ("manager", "admin")
