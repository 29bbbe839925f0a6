"""
Occurrence classifier — one attendance event in, one occurrence type and
initial review status out.

The type is picked by a fixed first-match priority, not by severity, so an
absence that also carries an early-departure flag is recorded as an absence
only.
"""

from __future__ import annotations

from typing import NamedTuple

from points_engine.core.enums import OccurrenceStatus, OccurrenceType
from points_engine.schemas.attendance import AttendanceEvent

ABSENT_STATUS = "absent"


class Classification(NamedTuple):
    type: OccurrenceType
    status: OccurrenceStatus


def is_point_bearing(event: AttendanceEvent) -> bool:
    """Upstream filter: only flagged or absent events become occurrences."""
    return (
        event.is_late
        or event.is_early_departure
        or event.is_no_call_no_show
        or event.status == ABSENT_STATUS
    )


def classify_type(event: AttendanceEvent) -> OccurrenceType:
    if event.is_no_call_no_show:
        return OccurrenceType.NO_CALL_NO_SHOW
    if event.status == ABSENT_STATUS:
        return OccurrenceType.ABSENT
    if event.is_late:
        return OccurrenceType.TARDY
    if event.is_early_departure:
        return OccurrenceType.EARLY_OUT
    return OccurrenceType.UNEXCUSED_ABSENCE


def initial_status(event: AttendanceEvent) -> OccurrenceStatus:
    if event.exception_approved:
        return OccurrenceStatus.EXCUSED
    if event.approved_at is not None:
        return OccurrenceStatus.APPROVED
    return OccurrenceStatus.PENDING


def classify(event: AttendanceEvent) -> Classification:
    return Classification(classify_type(event), initial_status(event))


def classify_event(event: AttendanceEvent) -> Classification | None:
    """Filter and classify; ``None`` means the event is fully compliant."""
    if not is_point_bearing(event):
        return None
    return classify(event)
