"""
Aggregator — employee and department attendance summaries.

Everything here is recomputed from the ledger on each call; nothing is
cached or written back. A malformed ledger entry is skipped and reported in
the summary's ``skipped`` list instead of failing the whole summary.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.core.enums import (ABSENCE_TYPES, DisciplineStatus,
                                      OccurrenceStatus, OccurrenceType)
from points_engine.core.exceptions import NotFound
from points_engine.models.employee import Employee
from points_engine.models.occurrence import Occurrence
from points_engine.schemas.policy import PolicyConfiguration
from points_engine.schemas.summary import (DepartmentAttendanceSummary,
                                           EmployeeAttendanceSummary)
from points_engine.services.ledger import (active_points, get_ledger,
                                           is_active, partition_entries)
from points_engine.services.policy import get_policy
from points_engine.services.status import evaluate_status, is_at_risk

logger = logging.getLogger(__name__)

# Excused and disputed occurrences never accrue points.
_ACCRUING = frozenset(
    {OccurrenceStatus.PENDING, OccurrenceStatus.APPROVED, OccurrenceStatus.EXPIRED}
)

Ledger = tuple[Employee, list[Occurrence]]


def _period_starts(as_of: date) -> tuple[date, date, date]:
    quarter_month = (as_of.month - 1) // 3 * 3 + 1
    return (
        as_of.replace(day=1),
        date(as_of.year, quarter_month, 1),
        date(as_of.year, 1, 1),
    )


def summarize_employee(
    employee: Employee,
    occurrences: Sequence[Occurrence],
    policy: PolicyConfiguration,
    as_of: date,
) -> EmployeeAttendanceSummary:
    entries, skipped = partition_entries(occurrences)

    counts = {t.value: 0 for t in OccurrenceType}
    month_start, quarter_start, year_start = _period_starts(as_of)
    month = quarter = year = 0.0
    pending = 0
    last_date: date | None = None

    for occ in entries:
        status = OccurrenceStatus(occ.status)
        if status == OccurrenceStatus.PENDING:
            pending += 1
        if status == OccurrenceStatus.EXCUSED:
            continue
        counts[occ.type] += 1
        if last_date is None or occ.occurrence_date > last_date:
            last_date = occ.occurrence_date
        if status not in _ACCRUING or occ.occurrence_date > as_of:
            continue
        if occ.occurrence_date >= year_start:
            year += occ.points
        if occ.occurrence_date >= quarter_start:
            quarter += occ.points
        if occ.occurrence_date >= month_start:
            month += occ.points

    active = [o for o in entries if is_active(o, as_of)]
    total = active_points(active, as_of)
    next_expiration = min((o.expiration_date for o in active), default=None)
    next_points = sum(o.points for o in active if o.expiration_date == next_expiration)

    return EmployeeAttendanceSummary(
        employee_id=employee.id,
        employee_name=employee.name,
        employee_code=employee.employee_code,
        department_code=employee.department_code,
        department_name=employee.department_name,
        as_of=as_of,
        current_points=total,
        status=evaluate_status(total, policy),
        max_points=policy.termination_threshold,
        occurrences_count=sum(counts.values()),
        counts_by_type=counts,
        tardy_count=counts[OccurrenceType.TARDY.value],
        absent_count=sum(counts[t.value] for t in ABSENCE_TYPES),
        pending_review_count=pending,
        points_this_month=month,
        points_this_quarter=quarter,
        points_this_year=year,
        last_occurrence_date=last_date,
        next_expiration_date=next_expiration,
        next_expiration_points=next_points,
        skipped=skipped,
    )


def summarize_department(
    department_code: str | None,
    ledgers: Sequence[Ledger],
    policy: PolicyConfiguration,
    as_of: date,
) -> DepartmentAttendanceSummary:
    summaries = [summarize_employee(emp, occs, policy, as_of) for emp, occs in ledgers]
    headcount = len(summaries)
    department_name = next((s.department_name for s in summaries if s.department_name), None)

    if headcount == 0:
        return DepartmentAttendanceSummary(
            department_code=department_code,
            department_name=department_name,
            as_of=as_of,
            total_employees=0,
            employees_with_occurrences=0,
            avg_points_per_employee=0.0,
            employees_at_risk=0,
            tardy_rate=0.0,
            absence_rate=0.0,
            compliance_score=100.0,
        )

    with_occurrences = sum(1 for s in summaries if s.occurrences_count > 0)
    at_risk = sum(1 for s in summaries if is_at_risk(s.status))
    with_tardy = sum(1 for s in summaries if s.tardy_count > 0)
    with_absence = sum(1 for s in summaries if s.absent_count > 0)
    compliance = 100 - (at_risk / headcount * 100)

    return DepartmentAttendanceSummary(
        department_code=department_code,
        department_name=department_name,
        as_of=as_of,
        total_employees=headcount,
        employees_with_occurrences=with_occurrences,
        avg_points_per_employee=round(sum(s.current_points for s in summaries) / headcount, 2),
        employees_at_risk=at_risk,
        tardy_rate=round(100 * with_tardy / headcount, 2),
        absence_rate=round(100 * with_absence / headcount, 2),
        compliance_score=round(min(100.0, max(0.0, compliance)), 2),
        skipped=[record for s in summaries for record in s.skipped],
    )


# ── Loading ─────────────────────────────────────────────────────────
async def load_ledgers(
    db: AsyncSession, department_code: str | None = None
) -> list[Ledger]:
    """Active employees with their occurrences, read in one statement."""
    query = (
        select(Employee, Occurrence)
        .outerjoin(Occurrence, Occurrence.employee_id == Employee.id)
        .where(Employee.is_active.is_(True))
        .order_by(Employee.id, Occurrence.occurrence_date)
    )
    if department_code is not None:
        query = query.where(Employee.department_code == department_code)
    result = await db.execute(query)

    employees: dict[int, Employee] = {}
    by_employee: dict[int, list[Occurrence]] = defaultdict(list)
    for employee, occ in result.all():
        employees[employee.id] = employee
        if occ is not None:
            by_employee[employee.id].append(occ)
    return [(emp, by_employee[emp_id]) for emp_id, emp in employees.items()]


async def get_employee_summary(
    db: AsyncSession, employee_id: int, as_of: date
) -> EmployeeAttendanceSummary:
    employee, occurrences = await get_ledger(db, employee_id)
    policy = await get_policy(db)
    return summarize_employee(employee, occurrences, policy, as_of)


async def list_employee_summaries(
    db: AsyncSession,
    as_of: date,
    status: DisciplineStatus | None = None,
    min_points: float | None = None,
    department_code: str | None = None,
) -> list[EmployeeAttendanceSummary]:
    """Points roster: every active employee, highest balance first."""
    policy = await get_policy(db)
    summaries = [
        summarize_employee(emp, occs, policy, as_of)
        for emp, occs in await load_ledgers(db, department_code)
    ]
    if status is not None:
        summaries = [s for s in summaries if s.status == status]
    if min_points is not None:
        summaries = [s for s in summaries if s.current_points >= min_points]
    summaries.sort(key=lambda s: (-s.current_points, s.employee_name))
    return summaries


async def get_department_summary(
    db: AsyncSession, department_code: str, as_of: date
) -> DepartmentAttendanceSummary:
    ledgers = await load_ledgers(db, department_code)
    if not ledgers:
        raise NotFound(f"Department {department_code!r} has no active employees")
    policy = await get_policy(db)
    return summarize_department(department_code, ledgers, policy, as_of)


async def list_department_summaries(
    db: AsyncSession, as_of: date
) -> list[DepartmentAttendanceSummary]:
    policy = await get_policy(db)
    grouped: dict[str | None, list[Ledger]] = defaultdict(list)
    for employee, occurrences in await load_ledgers(db):
        grouped[employee.department_code].append((employee, occurrences))

    summaries = [
        summarize_department(code, ledgers, policy, as_of) for code, ledgers in grouped.items()
    ]
    summaries.sort(key=lambda s: (s.department_code is None, s.department_code or ""))
    logger.debug("Computed %d department summaries as of %s", len(summaries), as_of)
    return summaries
