"""
Points ledger — the per-employee history of occurrences and the only code
that changes their review status.

Every status change is a single compare-and-set ``UPDATE ... WHERE id = :id
AND version = :seen``. Losing that race raises ``Conflict`` instead of
overwriting another supervisor's decision. Expiration sweeps re-check the
status inside their own ``UPDATE`` so a sweep never resurrects or expires an
occurrence a supervisor excused a moment earlier.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.core.enums import (COUNTING_STATUSES, OccurrenceStatus,
                                      OccurrenceType, PointsAction)
from points_engine.core.exceptions import (Conflict, InvalidTransition,
                                           NotFound)
from points_engine.models.employee import Employee
from points_engine.models.occurrence import Occurrence, PointsHistory
from points_engine.schemas.attendance import AttendanceEvent, OccurrenceCreate
from points_engine.schemas.policy import PolicyConfiguration
from points_engine.schemas.summary import SkippedRecord
from points_engine.services.classifier import classify_event
from points_engine.services.policy import get_policy

logger = logging.getLogger(__name__)

TRANSITIONS: dict[OccurrenceStatus, frozenset[OccurrenceStatus]] = {
    OccurrenceStatus.PENDING: frozenset(
        {
            OccurrenceStatus.APPROVED,
            OccurrenceStatus.EXCUSED,
            OccurrenceStatus.DISPUTED,
            OccurrenceStatus.EXPIRED,
        }
    ),
    OccurrenceStatus.APPROVED: frozenset({OccurrenceStatus.EXCUSED, OccurrenceStatus.EXPIRED}),
    OccurrenceStatus.DISPUTED: frozenset({OccurrenceStatus.APPROVED, OccurrenceStatus.EXCUSED}),
    OccurrenceStatus.EXCUSED: frozenset(),
    OccurrenceStatus.EXPIRED: frozenset(),
}

_VERBS = {
    OccurrenceStatus.APPROVED: "approve",
    OccurrenceStatus.EXCUSED: "excuse",
    OccurrenceStatus.DISPUTED: "dispute",
}


class MalformedEntry(ValueError):
    """A stored occurrence that cannot be interpreted."""


# ── Pure helpers ────────────────────────────────────────────────────
def expiration_date_for(occurrence_date: date, policy: PolicyConfiguration) -> date:
    """Exact day arithmetic: 2024-02-29 + 365 days is 2025-02-28."""
    return occurrence_date + timedelta(days=policy.expiration_window_days)


def can_transition(current: OccurrenceStatus, target: OccurrenceStatus) -> bool:
    return target in TRANSITIONS[current]


def is_active(occurrence: Occurrence, as_of: date) -> bool:
    """Counts toward the active total on ``as_of``.

    Checks the date as well as the status, so an occurrence past its
    expiration date stops counting even before a sweep marks it expired.
    """
    return (
        OccurrenceStatus(occurrence.status) in COUNTING_STATUSES
        and occurrence.expiration_date > as_of
    )


def active_points(occurrences: Iterable[Occurrence], as_of: date) -> float:
    return sum(o.points for o in occurrences if is_active(o, as_of))


def validate_entry(occurrence: Occurrence) -> None:
    try:
        OccurrenceType(occurrence.type)
        OccurrenceStatus(occurrence.status)
    except ValueError as exc:
        raise MalformedEntry(str(exc)) from exc
    if occurrence.points is None or occurrence.points < 0:
        raise MalformedEntry(f"invalid point value {occurrence.points!r}")
    if occurrence.occurrence_date is None or occurrence.expiration_date is None:
        raise MalformedEntry("missing occurrence or expiration date")


def partition_entries(
    occurrences: Iterable[Occurrence],
) -> tuple[list[Occurrence], list[SkippedRecord]]:
    """Split a ledger into usable entries and flagged malformed ones."""
    valid: list[Occurrence] = []
    skipped: list[SkippedRecord] = []
    for occ in occurrences:
        try:
            validate_entry(occ)
        except MalformedEntry as exc:
            logger.warning(
                "Skipping malformed occurrence %s for employee %s: %s",
                occ.id,
                occ.employee_id,
                exc,
            )
            skipped.append(
                SkippedRecord(employee_id=occ.employee_id, occurrence_id=occ.id, reason=str(exc))
            )
            continue
        valid.append(occ)
    return valid, skipped


# ── Reads ───────────────────────────────────────────────────────────
async def get_employee(db: AsyncSession, employee_id: int) -> Employee:
    result = await db.execute(select(Employee).where(Employee.id == employee_id))
    employee = result.scalar_one_or_none()
    if employee is None:
        raise NotFound(f"Employee {employee_id} not found")
    return employee


async def get_occurrence(db: AsyncSession, occurrence_id: int) -> Occurrence:
    result = await db.execute(select(Occurrence).where(Occurrence.id == occurrence_id))
    occ = result.scalar_one_or_none()
    if occ is None:
        raise NotFound(f"Occurrence {occurrence_id} not found")
    return occ


async def get_ledger(db: AsyncSession, employee_id: int) -> tuple[Employee, list[Occurrence]]:
    employee = await get_employee(db, employee_id)
    result = await db.execute(
        select(Occurrence)
        .where(Occurrence.employee_id == employee_id)
        .order_by(Occurrence.occurrence_date.desc(), Occurrence.id.desc())
    )
    return employee, list(result.scalars().all())


async def list_occurrences(
    db: AsyncSession,
    *,
    employee_id: int | None = None,
    department_code: str | None = None,
    status: OccurrenceStatus | None = None,
    occurrence_type: OccurrenceType | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 100,
) -> list[Occurrence]:
    query = (
        select(Occurrence)
        .join(Employee, Occurrence.employee_id == Employee.id)
        .order_by(Occurrence.occurrence_date.desc(), Occurrence.id.desc())
        .offset(skip)
        .limit(limit)
    )
    if employee_id is not None:
        query = query.where(Occurrence.employee_id == employee_id)
    if department_code:
        query = query.where(Employee.department_code == department_code)
    if status is not None:
        query = query.where(Occurrence.status == status.value)
    if occurrence_type is not None:
        query = query.where(Occurrence.type == occurrence_type.value)
    if search:
        # Escape SQL LIKE metacharacters to prevent wildcard injection
        safe = search.replace("%", r"\%").replace("_", r"\_")
        pattern = f"%{safe}%"
        query = query.where(
            or_(
                Employee.name.ilike(pattern, escape="\\"),
                Employee.employee_code.ilike(pattern, escape="\\"),
                Employee.department_name.ilike(pattern, escape="\\"),
            )
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_points_history(db: AsyncSession, employee_id: int) -> list[PointsHistory]:
    await get_employee(db, employee_id)
    result = await db.execute(
        select(PointsHistory)
        .where(PointsHistory.employee_id == employee_id)
        .order_by(PointsHistory.created_at.asc(), PointsHistory.id.asc())
    )
    return list(result.scalars().all())


# ── Recording ───────────────────────────────────────────────────────
def _log_points(
    db: AsyncSession,
    occ: Occurrence,
    action: PointsAction,
    reason: str,
    performed_by: str | None = None,
) -> None:
    change = occ.points if action == PointsAction.ADD else -occ.points
    db.add(
        PointsHistory(
            employee_id=occ.employee_id,
            occurrence_id=occ.id,
            action=action.value,
            points_change=change,
            reason=reason,
            performed_by=performed_by,
        )
    )


async def _insert_occurrence(
    db: AsyncSession,
    data: OccurrenceCreate,
    policy: PolicyConfiguration,
) -> Occurrence:
    """Stage a new occurrence priced by the current policy (no commit)."""
    reviewed = data.status != OccurrenceStatus.PENDING
    occ = Occurrence(
        employee_id=data.employee_id,
        type=data.type.value,
        status=data.status.value,
        points=policy.points_for(data.type),
        occurrence_date=data.occurrence_date,
        expiration_date=expiration_date_for(data.occurrence_date, policy),
        minutes_late=data.minutes_late,
        reason=data.reason,
        notes=data.notes,
        supervisor_id=data.supervisor_id,
        reviewed_at=datetime.now(timezone.utc) if reviewed else None,
        source_event_id=data.source_event_id,
        version=1,
    )
    db.add(occ)
    await db.flush()
    if data.status in COUNTING_STATUSES:
        _log_points(db, occ, PointsAction.ADD, f"{data.type.value} recorded", data.supervisor_id)
    return occ


async def record_occurrence(db: AsyncSession, data: OccurrenceCreate) -> Occurrence:
    """Append a classified occurrence to the employee's ledger.

    Re-recording an already ingested source event returns the stored
    occurrence unchanged.
    """
    await get_employee(db, data.employee_id)
    if data.source_event_id:
        result = await db.execute(
            select(Occurrence).where(Occurrence.source_event_id == data.source_event_id)
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            return existing

    policy = await get_policy(db)
    occ = await _insert_occurrence(db, data, policy)
    await db.commit()
    await db.refresh(occ)
    logger.info(
        "Recorded %s occurrence %d for employee %d (%.2f pts, expires %s)",
        occ.type,
        occ.id,
        occ.employee_id,
        occ.points,
        occ.expiration_date,
    )
    return occ


def occurrence_from_event(event: AttendanceEvent) -> OccurrenceCreate | None:
    classification = classify_event(event)
    if classification is None:
        return None
    return OccurrenceCreate(
        employee_id=event.employee_id,
        type=classification.type,
        status=classification.status,
        occurrence_date=event.date,
        minutes_late=event.late_minutes if event.late_minutes > 0 else None,
        reason=event.exception_reason,
        notes=event.notes,
        supervisor_id=event.approved_by,
        source_event_id=event.event_id,
    )


async def ingest_events(
    db: AsyncSession, events: Sequence[AttendanceEvent]
) -> tuple[list[Occurrence], int, list[Occurrence]]:
    """Classify and record a batch of events in one transaction.

    Returns ``(recorded, compliant, duplicates)``; ``duplicates`` holds the
    stored occurrence for every event whose source id was already ingested,
    earlier or in this batch. The whole batch is rejected with ``NotFound``
    if it references an unknown employee.
    """
    employee_ids = {e.employee_id for e in events}
    result = await db.execute(select(Employee.id).where(Employee.id.in_(sorted(employee_ids))))
    missing = employee_ids - set(result.scalars().all())
    if missing:
        raise NotFound(f"Unknown employee id(s): {', '.join(str(i) for i in sorted(missing))}")

    source_ids = {e.event_id for e in events if e.event_id}
    by_source: dict[str, Occurrence] = {}
    if source_ids:
        result = await db.execute(
            select(Occurrence).where(Occurrence.source_event_id.in_(sorted(source_ids)))
        )
        by_source.update((o.source_event_id, o) for o in result.scalars().all())

    policy = await get_policy(db)
    recorded: list[Occurrence] = []
    duplicates: list[Occurrence] = []
    compliant = 0
    for event in events:
        data = occurrence_from_event(event)
        if data is None:
            compliant += 1
            continue
        if data.source_event_id in by_source:
            duplicates.append(by_source[data.source_event_id])
            continue
        occ = await _insert_occurrence(db, data, policy)
        recorded.append(occ)
        if data.source_event_id:
            by_source[data.source_event_id] = occ

    await db.commit()
    for occ in {id(o): o for o in recorded + duplicates}.values():
        await db.refresh(occ)
    logger.info(
        "Ingested %d events: %d recorded, %d compliant, %d duplicates",
        len(events),
        len(recorded),
        compliant,
        len(duplicates),
    )
    return recorded, compliant, duplicates


# ── Supervisor actions ──────────────────────────────────────────────
async def _transition(
    db: AsyncSession,
    occurrence_id: int,
    target: OccurrenceStatus,
    *,
    supervisor_id: str | None = None,
    expected_version: int | None = None,
    note: str | None = None,
) -> Occurrence:
    occ = await get_occurrence(db, occurrence_id)
    seen = occ.version
    verb = _VERBS[target]
    if expected_version is not None and expected_version != seen:
        raise Conflict(
            f"Occurrence {occurrence_id} was changed by someone else "
            f"(now {occ.status}); refresh and retry."
        )

    current = OccurrenceStatus(occ.status)
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot {verb} occurrence {occurrence_id}: it is already {current.value}."
        )

    values: dict[str, object] = {"status": target.value, "version": seen + 1}
    if supervisor_id is not None:
        values["supervisor_id"] = supervisor_id
        values["reviewed_at"] = datetime.now(timezone.utc)
    if note:
        column = "reason" if target == OccurrenceStatus.DISPUTED else "notes"
        values[column] = note

    result = await db.execute(
        update(Occurrence)
        .where(Occurrence.id == occurrence_id, Occurrence.version == seen)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.warning("Lost %s race on occurrence %d (version %d)", verb, occurrence_id, seen)
        raise Conflict(
            f"Occurrence {occurrence_id} was changed by someone else; refresh and retry."
        )

    was_counting = current in COUNTING_STATUSES
    now_counting = target in COUNTING_STATUSES
    lapsed = occ.expiration_date <= datetime.now(timezone.utc).date()
    if was_counting and not now_counting and lapsed:
        # Past its expiration but not yet swept: the points stopped counting
        # on the expiration date, not at this review.
        _log_points(db, occ, PointsAction.EXPIRE, f"{occ.type} expired", supervisor_id)
    elif was_counting and not now_counting:
        _log_points(db, occ, PointsAction.REMOVE, f"{occ.type} {target.value}", supervisor_id)
    elif now_counting and not was_counting:
        _log_points(db, occ, PointsAction.ADD, f"{occ.type} {target.value}", supervisor_id)

    await db.commit()
    await db.refresh(occ)
    logger.info(
        "Occurrence %d %s -> %s by %s",
        occurrence_id,
        current.value,
        target.value,
        supervisor_id or "employee",
    )
    return occ


async def approve(
    db: AsyncSession,
    occurrence_id: int,
    supervisor_id: str,
    *,
    expected_version: int | None = None,
    notes: str | None = None,
) -> Occurrence:
    return await _transition(
        db,
        occurrence_id,
        OccurrenceStatus.APPROVED,
        supervisor_id=supervisor_id,
        expected_version=expected_version,
        note=notes,
    )


async def excuse(
    db: AsyncSession,
    occurrence_id: int,
    supervisor_id: str,
    *,
    expected_version: int | None = None,
    notes: str | None = None,
) -> Occurrence:
    return await _transition(
        db,
        occurrence_id,
        OccurrenceStatus.EXCUSED,
        supervisor_id=supervisor_id,
        expected_version=expected_version,
        note=notes,
    )


async def dispute(
    db: AsyncSession,
    occurrence_id: int,
    *,
    expected_version: int | None = None,
    reason: str | None = None,
) -> Occurrence:
    return await _transition(
        db,
        occurrence_id,
        OccurrenceStatus.DISPUTED,
        expected_version=expected_version,
        note=reason,
    )


# ── Expiration ──────────────────────────────────────────────────────
async def sweep_expirations(
    db: AsyncSession, as_of: date, employee_id: int | None = None
) -> int:
    """Expire pending/approved occurrences whose expiration date <= ``as_of``.

    Idempotent. Each row is re-checked at update time, so an occurrence
    excused after the candidate query is left alone.
    """
    query = select(Occurrence).where(
        Occurrence.status.in_([s.value for s in COUNTING_STATUSES]),
        Occurrence.expiration_date <= as_of,
    )
    if employee_id is not None:
        query = query.where(Occurrence.employee_id == employee_id)
    candidates = list((await db.execute(query)).scalars().all())

    expired = 0
    for occ in candidates:
        result = await db.execute(
            update(Occurrence)
            .where(
                Occurrence.id == occ.id,
                Occurrence.status.in_([s.value for s in COUNTING_STATUSES]),
                Occurrence.expiration_date <= as_of,
            )
            .values(status=OccurrenceStatus.EXPIRED.value, version=Occurrence.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            _log_points(db, occ, PointsAction.EXPIRE, f"{occ.type} expired")
            expired += 1

    await db.commit()
    if candidates:
        # Reload what the UPDATEs changed behind the identity map's back.
        await db.execute(
            select(Occurrence)
            .where(Occurrence.id.in_([o.id for o in candidates]))
            .execution_options(populate_existing=True)
        )
    if expired:
        logger.info("Expired %d occurrence(s) as of %s", expired, as_of)
    return expired
