"""
Attendance Policy model — singleton table for the points policy.

Only one row should ever exist. Supervisors update it via the policy API and
the ledger reads it when recording new occurrences; rows already in the
ledger keep the point value they were recorded with.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer

from points_engine.db.base import Base


class AttendancePolicy(Base):
    __tablename__ = "attendance_policy"

    id: int = Column(Integer, primary_key=True, default=1)  # type: ignore[assignment]
    points_per_tardy: float = Column(Float, nullable=False)  # type: ignore[assignment]
    points_per_absent: float = Column(Float, nullable=False)  # type: ignore[assignment]
    points_per_early_out: float = Column(Float, nullable=False)  # type: ignore[assignment]
    points_per_no_call_no_show: float = Column(Float, nullable=False)  # type: ignore[assignment]
    points_per_unexcused_absence: float = Column(Float, nullable=False)  # type: ignore[assignment]
    warning_threshold: float = Column(Float, nullable=False)  # type: ignore[assignment]
    probation_threshold: float = Column(Float, nullable=False)  # type: ignore[assignment]
    final_warning_threshold: float = Column(Float, nullable=False)  # type: ignore[assignment]
    termination_threshold: float = Column(Float, nullable=False)  # type: ignore[assignment]
    expiration_window_days: int = Column(Integer, nullable=False, default=365)  # type: ignore[assignment]
    pending_review_grace_days: int = Column(Integer, nullable=False, default=3)  # type: ignore[assignment]
    expiration_warning_days: int = Column(Integer, nullable=False, default=7)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
