"""
Occurrence endpoints — event ingestion, the points ledger and supervisor
review actions.

Review actions accept the ``expected_version`` the supervisor's screen was
rendered from; if someone else changed the occurrence in the meantime the
call fails with 409 ``conflict`` and the client should refetch.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.api.v1.deps import get_db, resolve_as_of, today_utc
from points_engine.core.enums import OccurrenceStatus, OccurrenceType
from points_engine.models.occurrence import Occurrence, PointsHistory
from points_engine.schemas.attendance import (AttendanceEventBatch,
                                              DisputeAction, IngestResponse,
                                              LedgerResponse, OccurrenceCreate,
                                              OccurrenceRead,
                                              PointsHistoryRead, ReviewAction,
                                              SweepRequest, SweepResponse)
from points_engine.services import ledger
from points_engine.services.policy import get_policy
from points_engine.services.status import evaluate_status

router = APIRouter(tags=["occurrences"])


# ── Ingestion ───────────────────────────────────────────────────────
@router.post("/attendance/events", response_model=IngestResponse)
async def ingest_events(
    body: AttendanceEventBatch,
    db: AsyncSession = Depends(get_db),
) -> IngestResponse:
    """Classify a batch of attendance events and record the occurrences."""
    recorded, compliant, duplicates = await ledger.ingest_events(db, body.events)
    return IngestResponse(
        received=len(body.events),
        compliant=compliant,
        recorded=len(recorded),
        duplicates=len(duplicates),
        occurrences=[OccurrenceRead.model_validate(o) for o in recorded],
        existing=[OccurrenceRead.model_validate(o) for o in duplicates],
    )


# ── Ledger ──────────────────────────────────────────────────────────
@router.post("/occurrences", response_model=OccurrenceRead, status_code=201)
async def record_occurrence(
    body: OccurrenceCreate,
    db: AsyncSession = Depends(get_db),
) -> Occurrence:
    return await ledger.record_occurrence(db, body)


@router.get("/occurrences", response_model=list[OccurrenceRead])
async def list_occurrences(
    employee_id: int | None = None,
    department_code: str | None = None,
    status: OccurrenceStatus | None = None,
    type: OccurrenceType | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = Query(default=100, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[Occurrence]:
    return await ledger.list_occurrences(
        db,
        employee_id=employee_id,
        department_code=department_code,
        status=status,
        occurrence_type=type,
        search=search,
        skip=skip,
        limit=limit,
    )


@router.post("/occurrences/sweep", response_model=SweepResponse)
async def sweep_expirations(
    body: SweepRequest,
    db: AsyncSession = Depends(get_db),
) -> SweepResponse:
    """Move lapsed pending/approved occurrences to expired."""
    as_of = body.as_of or today_utc()
    expired = await ledger.sweep_expirations(db, as_of, employee_id=body.employee_id)
    return SweepResponse(as_of=as_of, expired=expired)


@router.get("/occurrences/{occurrence_id}", response_model=OccurrenceRead)
async def get_occurrence(
    occurrence_id: int,
    db: AsyncSession = Depends(get_db),
) -> Occurrence:
    return await ledger.get_occurrence(db, occurrence_id)


@router.post("/occurrences/{occurrence_id}/approve", response_model=OccurrenceRead)
async def approve_occurrence(
    occurrence_id: int,
    body: ReviewAction,
    db: AsyncSession = Depends(get_db),
) -> Occurrence:
    return await ledger.approve(
        db,
        occurrence_id,
        body.supervisor_id,
        expected_version=body.expected_version,
        notes=body.notes,
    )


@router.post("/occurrences/{occurrence_id}/excuse", response_model=OccurrenceRead)
async def excuse_occurrence(
    occurrence_id: int,
    body: ReviewAction,
    db: AsyncSession = Depends(get_db),
) -> Occurrence:
    """Excuse an occurrence; its points stop counting but the record stays."""
    return await ledger.excuse(
        db,
        occurrence_id,
        body.supervisor_id,
        expected_version=body.expected_version,
        notes=body.notes,
    )


@router.post("/occurrences/{occurrence_id}/dispute", response_model=OccurrenceRead)
async def dispute_occurrence(
    occurrence_id: int,
    body: DisputeAction,
    db: AsyncSession = Depends(get_db),
) -> Occurrence:
    """Hold an occurrence out of the total until a supervisor resolves it."""
    return await ledger.dispute(
        db,
        occurrence_id,
        expected_version=body.expected_version,
        reason=body.reason,
    )


@router.get("/employees/{employee_id}/ledger", response_model=LedgerResponse)
async def get_ledger(
    employee_id: int,
    as_of: date = Depends(resolve_as_of),
    db: AsyncSession = Depends(get_db),
) -> LedgerResponse:
    employee, occurrences = await ledger.get_ledger(db, employee_id)
    policy = await get_policy(db)
    entries, _skipped = ledger.partition_entries(occurrences)
    total = ledger.active_points(entries, as_of)
    return LedgerResponse(
        employee_id=employee.id,
        name=employee.name,
        as_of=as_of,
        active_points=total,
        status=evaluate_status(total, policy),
        occurrences=[OccurrenceRead.model_validate(o) for o in occurrences],
    )


@router.get("/employees/{employee_id}/points-history", response_model=list[PointsHistoryRead])
async def get_points_history(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
) -> list[PointsHistory]:
    return await ledger.get_points_history(db, employee_id)
