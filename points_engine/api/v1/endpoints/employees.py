"""
Employee endpoints — the roster the ledgers, summaries and alert scans
hang off.

Listings are grouped by department and can be narrowed to the tier the last
alert scan observed, which is how supervisors pull "everyone currently on
probation in WH" without recomputing points. Deleting an employee is a soft
delete: the ledger and points history stay, and the employee drops out of
summaries and alert scans until reactivated.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.api.v1.deps import get_db
from points_engine.core.enums import DisciplineStatus
from points_engine.core.exceptions import Conflict
from points_engine.models.employee import Employee
from points_engine.schemas.attendance import (DeleteResponse, EmployeeCreate,
                                              EmployeeRead, EmployeeUpdate)
from points_engine.services.ledger import get_employee as load_employee

router = APIRouter(tags=["employees"])
logger = logging.getLogger(__name__)


@router.get("/employees", response_model=list[EmployeeRead])
async def list_employees(
    department_code: str | None = None,
    status: DisciplineStatus | None = Query(
        default=None, description="Tier recorded by the last alert scan"
    ),
    search: str | None = None,
    include_inactive: bool = False,
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[Employee]:
    """Employees ordered by department, then name."""
    query = (
        select(Employee)
        .order_by(Employee.department_code.is_(None), Employee.department_code, Employee.name)
        .offset(skip)
        .limit(limit)
    )
    if not include_inactive:
        query = query.where(Employee.is_active.is_(True))
    if department_code:
        query = query.where(Employee.department_code == department_code)
    if status is not None:
        query = query.where(Employee.last_observed_status == status.value)
    if search:
        safe = search.replace("%", r"\%").replace("_", r"\_")
        pattern = f"%{safe}%"
        query = query.where(
            or_(
                Employee.name.ilike(pattern, escape="\\"),
                Employee.employee_code.ilike(pattern, escape="\\"),
            )
        )
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/employees", response_model=EmployeeRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    existing = await db.execute(
        select(Employee.id).where(Employee.employee_code == body.employee_code)
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict(f"Employee code {body.employee_code!r} is already in use")

    employee = Employee(**body.model_dump())
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    logger.info(
        "Registered employee %s in department %s",
        employee.employee_code,
        employee.department_code or "-",
    )
    return employee


@router.get("/employees/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    return await load_employee(db, employee_id)


@router.put("/employees/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Edit contact details, move departments or reactivate.

    Moving departments takes the whole ledger along: department summaries
    are computed from current membership.
    """
    emp = await load_employee(db, employee_id)
    changes = body.model_dump(exclude_unset=True)
    moved_from = emp.department_code
    for field, value in changes.items():
        setattr(emp, field, value)

    await db.commit()
    await db.refresh(emp)
    if "department_code" in changes and changes["department_code"] != moved_from:
        logger.info(
            "Employee %d moved from department %s to %s",
            employee_id,
            moved_from or "-",
            emp.department_code or "-",
        )
    return emp


@router.delete("/employees/{employee_id}", response_model=DeleteResponse)
async def delete_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    """Deactivate an employee. The points ledger is preserved."""
    emp = await load_employee(db, employee_id)
    emp.is_active = False
    await db.commit()
    logger.info("Deactivated employee %d (%s)", employee_id, emp.employee_code)
    return DeleteResponse(success=True, message=f"Employee '{emp.name}' deactivated")
