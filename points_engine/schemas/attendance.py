"""Pydantic schemas for attendance events, employees and the points ledger."""

from __future__ import annotations

import re
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from points_engine.core.enums import DisciplineStatus, OccurrenceStatus, OccurrenceType

_CODE_RE = re.compile(r"^[A-Za-z0-9:_-]{1,64}$")


# ── Attendance events (from the time & attendance system) ──────────
class AttendanceEvent(BaseModel):
    """One employee-day as reported by the time & attendance system."""

    event_id: str | None = None
    employee_id: int
    date: date
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    actual_clock_in: datetime | None = None
    actual_clock_out: datetime | None = None
    status: str = "scheduled"
    is_late: bool = False
    late_minutes: int = 0
    is_early_departure: bool = False
    early_departure_minutes: int = 0
    is_no_call_no_show: bool = False
    exception_reason: str | None = None
    exception_approved: bool = False
    notes: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None

    model_config = {"frozen": True}

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        return v.strip().lower()


class AttendanceEventBatch(BaseModel):
    events: list[AttendanceEvent] = Field(min_length=1, max_length=5000)


# ── Occurrences ─────────────────────────────────────────────────────
class OccurrenceCreate(BaseModel):
    employee_id: int
    type: OccurrenceType
    status: OccurrenceStatus = OccurrenceStatus.PENDING
    occurrence_date: date
    minutes_late: int | None = Field(default=None, ge=0)
    reason: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)
    supervisor_id: str | None = None
    source_event_id: str | None = None

    @field_validator("status")
    @classmethod
    def _initial_status(cls, v: OccurrenceStatus) -> OccurrenceStatus:
        if v not in (OccurrenceStatus.PENDING, OccurrenceStatus.APPROVED, OccurrenceStatus.EXCUSED):
            raise ValueError("A new occurrence must start as pending, approved or excused")
        return v


class OccurrenceRead(BaseModel):
    id: int
    employee_id: int
    type: str
    status: str
    points: float
    occurrence_date: date
    expiration_date: date
    minutes_late: int | None = None
    reason: str | None = None
    notes: str | None = None
    supervisor_id: str | None = None
    reviewed_at: datetime | None = None
    source_event_id: str | None = None
    version: int
    recorded_at: datetime | None = None

    model_config = {"from_attributes": True}


class ReviewAction(BaseModel):
    """Approve / excuse body — the supervisor and the version they saw."""

    supervisor_id: str
    expected_version: int | None = None
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("supervisor_id")
    @classmethod
    def _supervisor(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("supervisor_id must not be empty")
        return v


class DisputeAction(BaseModel):
    expected_version: int | None = None
    reason: str | None = Field(default=None, max_length=500)


class SweepRequest(BaseModel):
    as_of: date | None = None
    employee_id: int | None = None


class SweepResponse(BaseModel):
    as_of: date
    expired: int


class IngestResponse(BaseModel):
    received: int
    compliant: int
    recorded: int
    duplicates: int
    occurrences: list[OccurrenceRead]
    # Stored occurrences for events whose source id was already ingested
    existing: list[OccurrenceRead] = []


class PointsHistoryRead(BaseModel):
    id: int
    employee_id: int
    occurrence_id: int
    action: str
    points_change: float
    reason: str
    performed_by: str | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class LedgerResponse(BaseModel):
    employee_id: int
    name: str
    as_of: date
    active_points: float
    status: DisciplineStatus
    occurrences: list[OccurrenceRead]


# ── Employee ────────────────────────────────────────────────────────
class EmployeeCreate(BaseModel):
    name: str
    employee_code: str
    email: str | None = None
    department_code: str | None = None
    department_name: str | None = None
    position: str | None = None

    @field_validator("employee_code")
    @classmethod
    def _code(cls, v: str) -> str:
        v = v.strip()
        if not _CODE_RE.match(v):
            raise ValueError("Employee code must be 1-64 alphanumeric chars")
        return v

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        if len(v) > 200:
            raise ValueError("Name must not exceed 200 characters")
        return v


class EmployeeUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    department_code: str | None = None
    department_name: str | None = None
    position: str | None = None
    is_active: bool = True


class EmployeeRead(BaseModel):
    id: int
    name: str
    employee_code: str
    email: str | None
    department_code: str | None
    department_name: str | None
    position: str | None
    is_active: bool
    last_observed_status: str = DisciplineStatus.GOOD.value
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ── Health ─────────────────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool


# ── Generic ────────────────────────────────────────────────────────
class DeleteResponse(BaseModel):
    success: bool
    message: str
