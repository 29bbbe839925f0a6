"""Pydantic schemas for derived summaries and alerts.

Summaries are recomputed from the ledger on every read and never stored.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from points_engine.core.enums import DisciplineStatus


class SkippedRecord(BaseModel):
    """A ledger entry left out of a summary because it is malformed."""

    employee_id: int | None
    occurrence_id: int | None
    reason: str


# ── Employee ────────────────────────────────────────────────────────
class EmployeeAttendanceSummary(BaseModel):
    employee_id: int
    employee_name: str
    employee_code: str
    department_code: str | None
    department_name: str | None
    as_of: date
    current_points: float
    status: DisciplineStatus
    max_points: float
    occurrences_count: int
    counts_by_type: dict[str, int]
    tardy_count: int
    absent_count: int
    pending_review_count: int
    points_this_month: float
    points_this_quarter: float
    points_this_year: float
    last_occurrence_date: date | None = None
    next_expiration_date: date | None = None
    next_expiration_points: float = 0.0
    skipped: list[SkippedRecord] = Field(default_factory=list)


# ── Department ──────────────────────────────────────────────────────
class DepartmentAttendanceSummary(BaseModel):
    department_code: str | None
    department_name: str | None
    as_of: date
    total_employees: int
    employees_with_occurrences: int
    avg_points_per_employee: float
    employees_at_risk: int
    tardy_rate: float
    absence_rate: float
    compliance_score: float
    skipped: list[SkippedRecord] = Field(default_factory=list)


# ── Alerts ──────────────────────────────────────────────────────────
class AlertRead(BaseModel):
    id: int
    category: str
    severity: str
    employee_id: int | None
    department_code: str | None
    occurrence_id: int | None
    tier: str | None
    title: str
    message: str
    is_read: bool
    is_dismissed: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


class AlertScanResponse(BaseModel):
    as_of: date
    created: int
    alerts: list[AlertRead]
    skipped: list[SkippedRecord] = Field(default_factory=list)


class UnreadCountResponse(BaseModel):
    unread: int
    by_severity: dict[str, int]
