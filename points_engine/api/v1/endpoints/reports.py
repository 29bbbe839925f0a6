"""
Reporting endpoints — employee and department attendance summaries, health.

Summaries are computed on every request from a single read of the ledger;
there is no stored summary that could drift from the occurrences.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.api.v1.deps import get_db, resolve_as_of
from points_engine.core.enums import DisciplineStatus
from points_engine.schemas.attendance import HealthResponse
from points_engine.schemas.summary import (DepartmentAttendanceSummary,
                                           EmployeeAttendanceSummary)
from points_engine.services import aggregator

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


@router.get("/employees/summaries", response_model=list[EmployeeAttendanceSummary])
async def employee_summaries(
    status: DisciplineStatus | None = None,
    min_points: float | None = Query(default=None, ge=0),
    department_code: str | None = None,
    as_of: date = Depends(resolve_as_of),
    db: AsyncSession = Depends(get_db),
) -> list[EmployeeAttendanceSummary]:
    """Points roster for all active employees, highest balance first."""
    return await aggregator.list_employee_summaries(
        db,
        as_of,
        status=status,
        min_points=min_points,
        department_code=department_code,
    )


@router.get("/employees/{employee_id}/summary", response_model=EmployeeAttendanceSummary)
async def employee_summary(
    employee_id: int,
    as_of: date = Depends(resolve_as_of),
    db: AsyncSession = Depends(get_db),
) -> EmployeeAttendanceSummary:
    """Active points, discipline tier and accrual buckets for one employee."""
    return await aggregator.get_employee_summary(db, employee_id, as_of)


@router.get("/departments/summary", response_model=list[DepartmentAttendanceSummary])
async def department_summaries(
    as_of: date = Depends(resolve_as_of),
    db: AsyncSession = Depends(get_db),
) -> list[DepartmentAttendanceSummary]:
    """Compliance summary for every department with active employees."""
    return await aggregator.list_department_summaries(db, as_of)


@router.get(
    "/departments/{department_code}/summary",
    response_model=DepartmentAttendanceSummary,
)
async def department_summary(
    department_code: str,
    as_of: date = Depends(resolve_as_of),
    db: AsyncSession = Depends(get_db),
) -> DepartmentAttendanceSummary:
    return await aggregator.get_department_summary(db, department_code, as_of)


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check — DB connectivity."""
    result = HealthResponse(db=False)
    try:
        await db.execute(select(1))
        result.db = True
    except SQLAlchemyError as e:
        logger.error("Health check DB failure: %s", e)
    return result
