"""
Alert model — scan results surfaced to supervisors.

``dedup_key`` is unique so a repeated scan can never insert the same alert
twice; read / dismissed are the only fields callers may change.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Index, Integer,
                        String)

from points_engine.db.base import Base


class Alert(Base):
    __tablename__ = "alerts"
    __table_args__ = (Index("ix_alerts_employee_state", "employee_id", "is_read", "is_dismissed"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    dedup_key: str = Column(String(200), unique=True, nullable=False)  # type: ignore[assignment]
    category: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    # threshold_crossed | pending_review | approaching_expiration
    severity: str = Column(String(10), nullable=False)  # type: ignore[assignment]
    # info | low | medium | high | critical
    employee_id: int | None = Column(Integer, ForeignKey("employees.id"), nullable=True)  # type: ignore[assignment]
    department_code: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    occurrence_id: int | None = Column(Integer, ForeignKey("occurrences.id"), nullable=True)  # type: ignore[assignment]
    tier: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    message: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    is_read: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    is_dismissed: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
