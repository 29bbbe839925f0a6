"""
Occurrence & PointsHistory models — the points ledger.

Occurrences are never deleted: excused and expired rows stay for audit and
simply stop counting toward the active total. ``version`` is bumped on every
status change and is the compare-and-set token for concurrent supervisors.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Column, Date, DateTime, Float, ForeignKey, Index,
                        Integer, String)
from sqlalchemy.orm import relationship

from points_engine.db.base import Base


class Occurrence(Base):
    __tablename__ = "occurrences"
    __table_args__ = (
        Index("ix_occurrence_employee_date", "employee_id", "occurrence_date"),
        Index("ix_occurrence_status_expiration", "status", "expiration_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    type: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    # tardy | absent | early_out | no_call_no_show | unexcused_absence
    status: str = Column(String(20), nullable=False, default="pending")  # type: ignore[assignment]
    # pending | approved | excused | disputed | expired
    points: float = Column(Float, nullable=False, default=0)  # type: ignore[assignment]
    occurrence_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    expiration_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    minutes_late: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    reason: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    notes: str | None = Column(String(1000), nullable=True)  # type: ignore[assignment]
    supervisor_id: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    reviewed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    source_event_id: str | None = Column(String(64), unique=True, nullable=True)  # type: ignore[assignment]
    version: int = Column(Integer, nullable=False, default=1)  # type: ignore[assignment]
    recorded_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", back_populates="occurrences")


class PointsHistory(Base):
    __tablename__ = "points_history"
    __table_args__ = (Index("ix_points_history_employee", "employee_id", "created_at"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    occurrence_id: int = Column(Integer, ForeignKey("occurrences.id"), nullable=False)  # type: ignore[assignment]
    action: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # add | remove | expire
    points_change: float = Column(Float, nullable=False)  # type: ignore[assignment]
    reason: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    performed_by: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
