"""
Alert generator — scans ledgers and upserts alerts by dedup key.

Three kinds of alert are raised per employee:

- ``threshold_crossed`` when the discipline tier rose since the last scan,
- ``pending_review`` when an occurrence has waited on a supervisor for more
  than ``pendingReviewGraceDays``,
- ``approaching_expiration`` when active points lapse within
  ``expirationWarningDays`` (which may improve the employee's tier).

An alert whose dedup key already exists is never inserted again, so
repeated scans are harmless. A threshold crossing is keyed by tier and scan
date: the last observed tier stops a rescan from re-raising it, while a
later crossing after the employee fell back below the tier raises a new
one. Read / dismissed are the only mutations.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.core.enums import (AlertCategory, AlertSeverity,
                                      DisciplineStatus, OccurrenceStatus)
from points_engine.core.exceptions import Conflict, NotFound
from points_engine.models.alert import Alert
from points_engine.models.employee import Employee
from points_engine.models.occurrence import Occurrence
from points_engine.schemas.policy import PolicyConfiguration
from points_engine.schemas.summary import SkippedRecord
from points_engine.services.aggregator import load_ledgers
from points_engine.services.ledger import (active_points, is_active,
                                           partition_entries)
from points_engine.services.policy import get_policy
from points_engine.services.status import evaluate_status, status_rank

logger = logging.getLogger(__name__)

TIER_SEVERITY = {
    DisciplineStatus.WARNING: AlertSeverity.MEDIUM,
    DisciplineStatus.PROBATION: AlertSeverity.HIGH,
    DisciplineStatus.FINAL_WARNING: AlertSeverity.CRITICAL,
    DisciplineStatus.TERMINATION: AlertSeverity.CRITICAL,
}

_TIER_LABELS = {
    DisciplineStatus.WARNING: "Warning",
    DisciplineStatus.PROBATION: "Probation",
    DisciplineStatus.FINAL_WARNING: "Final warning",
    DisciplineStatus.TERMINATION: "Termination review",
}


@dataclass(frozen=True)
class AlertDraft:
    dedup_key: str
    category: str
    severity: str
    employee_id: Optional[int]
    department_code: Optional[str]
    occurrence_id: Optional[int]
    tier: Optional[str]
    title: str
    message: str


def dedup_key(category: AlertCategory, employee_id: int, subject: object) -> str:
    return f"{category.value}:{employee_id}:{subject}"


def _recorded_on(occ: Occurrence) -> date:
    recorded = occ.recorded_at
    if isinstance(recorded, datetime):
        return recorded.date()
    return occ.occurrence_date


def last_observed_tier(employee: Employee) -> DisciplineStatus:
    try:
        return DisciplineStatus(employee.last_observed_status or DisciplineStatus.GOOD.value)
    except ValueError:
        logger.warning(
            "Employee %s has unknown last observed tier %r; treating as good",
            employee.id,
            employee.last_observed_status,
        )
        return DisciplineStatus.GOOD


def scan_employee(
    employee: Employee,
    occurrences: list[Occurrence],
    policy: PolicyConfiguration,
    as_of: date,
) -> tuple[list[AlertDraft], DisciplineStatus, list[SkippedRecord]]:
    """Alerts due for one employee, plus the tier observed by this scan."""
    entries, skipped = partition_entries(occurrences)
    total = active_points(entries, as_of)
    tier = evaluate_status(total, policy)
    drafts: list[AlertDraft] = []

    def draft(category, severity, title, message, *, subject, occurrence_id=None, tier_value=None):
        drafts.append(
            AlertDraft(
                dedup_key=dedup_key(category, employee.id, subject),
                category=category.value,
                severity=severity.value,
                employee_id=employee.id,
                department_code=employee.department_code,
                occurrence_id=occurrence_id,
                tier=tier_value,
                title=title,
                message=message,
            )
        )

    if status_rank(tier) > status_rank(last_observed_tier(employee)):
        draft(
            AlertCategory.THRESHOLD_CROSSED,
            TIER_SEVERITY[tier],
            f"{_TIER_LABELS[tier]} threshold reached",
            f"{employee.name} has {total:g} active points and is now at {tier.value}.",
            subject=f"{tier.value}:{as_of.isoformat()}",
            tier_value=tier.value,
        )

    grace = timedelta(days=policy.pending_review_grace_days)
    horizon = as_of + timedelta(days=policy.expiration_warning_days)
    for occ in entries:
        if occ.status == OccurrenceStatus.PENDING.value and as_of - _recorded_on(occ) > grace:
            draft(
                AlertCategory.PENDING_REVIEW,
                AlertSeverity.LOW,
                "Occurrence awaiting review",
                f"{occ.type} on {occ.occurrence_date} for {employee.name} has been "
                f"pending for more than {policy.pending_review_grace_days} days.",
                subject=occ.id,
                occurrence_id=occ.id,
            )
        if is_active(occ, as_of) and occ.expiration_date <= horizon:
            draft(
                AlertCategory.APPROACHING_EXPIRATION,
                AlertSeverity.INFO,
                "Points expiring soon",
                f"{occ.points:g} point(s) from {occ.occurrence_date} for {employee.name} "
                f"expire on {occ.expiration_date}.",
                subject=occ.id,
                occurrence_id=occ.id,
            )

    return drafts, tier, skipped


async def generate_alerts(
    db: AsyncSession, as_of: date
) -> tuple[list[Alert], list[SkippedRecord]]:
    """Scan every active employee and insert alerts not raised before."""
    policy = await get_policy(db)
    ledgers = await load_ledgers(db)

    drafts: list[AlertDraft] = []
    skipped: list[SkippedRecord] = []
    for employee, occurrences in ledgers:
        employee_drafts, tier, employee_skipped = scan_employee(employee, occurrences, policy, as_of)
        drafts.extend(employee_drafts)
        skipped.extend(employee_skipped)
        if employee.last_observed_status != tier.value:
            employee.last_observed_status = tier.value

    existing: set[str] = set()
    if drafts:
        result = await db.execute(
            select(Alert.dedup_key).where(Alert.dedup_key.in_([d.dedup_key for d in drafts]))
        )
        existing.update(result.scalars().all())

    created: list[Alert] = []
    for d in drafts:
        if d.dedup_key in existing:
            continue
        existing.add(d.dedup_key)
        alert = Alert(**asdict(d))
        db.add(alert)
        created.append(alert)

    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Concurrent alert scan detected: %s", exc)
        raise Conflict("Another alert scan ran at the same time; retry the scan.") from exc

    for alert in created:
        await db.refresh(alert)
    logger.info("Alert scan as of %s created %d alert(s)", as_of, len(created))
    return created, skipped


# ── Queries & acknowledgement ───────────────────────────────────────
async def list_alerts(
    db: AsyncSession,
    *,
    employee_id: int | None = None,
    department_code: str | None = None,
    category: AlertCategory | None = None,
    severity: AlertSeverity | None = None,
    unread_only: bool = False,
    include_dismissed: bool = False,
    skip: int = 0,
    limit: int = 100,
) -> list[Alert]:
    query = select(Alert).order_by(Alert.created_at.desc(), Alert.id.desc()).offset(skip).limit(limit)
    if employee_id is not None:
        query = query.where(Alert.employee_id == employee_id)
    if department_code:
        query = query.where(Alert.department_code == department_code)
    if category is not None:
        query = query.where(Alert.category == category.value)
    if severity is not None:
        query = query.where(Alert.severity == severity.value)
    if unread_only:
        query = query.where(Alert.is_read.is_(False))
    if not include_dismissed:
        query = query.where(Alert.is_dismissed.is_(False))
    result = await db.execute(query)
    return list(result.scalars().all())


async def _get_alert(db: AsyncSession, alert_id: int) -> Alert:
    result = await db.execute(select(Alert).where(Alert.id == alert_id))
    alert = result.scalar_one_or_none()
    if alert is None:
        raise NotFound(f"Alert {alert_id} not found")
    return alert


async def mark_read(db: AsyncSession, alert_id: int) -> Alert:
    alert = await _get_alert(db, alert_id)
    alert.is_read = True
    await db.commit()
    await db.refresh(alert)
    return alert


async def dismiss(db: AsyncSession, alert_id: int) -> Alert:
    alert = await _get_alert(db, alert_id)
    alert.is_read = True
    alert.is_dismissed = True
    await db.commit()
    await db.refresh(alert)
    logger.info("Dismissed alert %d", alert_id)
    return alert


async def unread_counts(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(
        select(Alert.severity, func.count(Alert.id))
        .where(Alert.is_read.is_(False), Alert.is_dismissed.is_(False))
        .group_by(Alert.severity)
    )
    return {severity: count for severity, count in result.all()}
