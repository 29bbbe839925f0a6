"""
Alert endpoints — run a scan, list alerts, acknowledge them.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.api.v1.deps import get_db, resolve_as_of
from points_engine.core.enums import AlertCategory, AlertSeverity
from points_engine.models.alert import Alert
from points_engine.schemas.summary import (AlertRead, AlertScanResponse,
                                           UnreadCountResponse)
from points_engine.services import alerts as alert_service

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.post("/scan", response_model=AlertScanResponse)
async def scan_alerts(
    as_of: date = Depends(resolve_as_of),
    db: AsyncSession = Depends(get_db),
) -> AlertScanResponse:
    """Scan all ledgers; only alerts not raised before are created."""
    created, skipped = await alert_service.generate_alerts(db, as_of)
    return AlertScanResponse(
        as_of=as_of,
        created=len(created),
        alerts=[AlertRead.model_validate(a) for a in created],
        skipped=skipped,
    )


@router.get("", response_model=list[AlertRead])
async def list_alerts(
    employee_id: int | None = None,
    department_code: str | None = None,
    category: AlertCategory | None = None,
    severity: AlertSeverity | None = None,
    unread_only: bool = False,
    include_dismissed: bool = False,
    skip: int = 0,
    limit: int = Query(default=100, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[Alert]:
    return await alert_service.list_alerts(
        db,
        employee_id=employee_id,
        department_code=department_code,
        category=category,
        severity=severity,
        unread_only=unread_only,
        include_dismissed=include_dismissed,
        skip=skip,
        limit=limit,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(db: AsyncSession = Depends(get_db)) -> UnreadCountResponse:
    by_severity = await alert_service.unread_counts(db)
    return UnreadCountResponse(unread=sum(by_severity.values()), by_severity=by_severity)


@router.post("/{alert_id}/read", response_model=AlertRead)
async def mark_alert_read(alert_id: int, db: AsyncSession = Depends(get_db)) -> Alert:
    return await alert_service.mark_read(db, alert_id)


@router.post("/{alert_id}/dismiss", response_model=AlertRead)
async def dismiss_alert(alert_id: int, db: AsyncSession = Depends(get_db)) -> Alert:
    return await alert_service.dismiss(db, alert_id)
