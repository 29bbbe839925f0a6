"""
Employee model — the subject every ledger, summary and alert hangs off.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.orm import relationship

from points_engine.db.base import Base


class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = (Index("ix_employees_department_active", "department_code", "is_active"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    employee_code: str = Column(String(64), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    department_code: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    department_name: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    position: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    # Tier seen by the last alert scan; an increase over it raises an alert.
    last_observed_status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="good",
        server_default="good",
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    occurrences = relationship(
        "Occurrence",
        back_populates="employee",
        cascade="all, delete-orphan",
    )
