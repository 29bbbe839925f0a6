from __future__ import annotations

from enum import Enum


class OccurrenceType(str, Enum):
    """Kinds of attendance infraction an event can be classified as."""

    TARDY = "tardy"
    ABSENT = "absent"
    EARLY_OUT = "early_out"
    NO_CALL_NO_SHOW = "no_call_no_show"
    UNEXCUSED_ABSENCE = "unexcused_absence"


class OccurrenceStatus(str, Enum):
    """Supervisor review state of an occurrence."""

    PENDING = "pending"
    APPROVED = "approved"
    EXCUSED = "excused"
    DISPUTED = "disputed"
    EXPIRED = "expired"


class DisciplineStatus(str, Enum):
    """Progressive-discipline tiers, declared in ascending order of severity."""

    GOOD = "good"
    WARNING = "warning"
    PROBATION = "probation"
    FINAL_WARNING = "final_warning"
    TERMINATION = "termination"


class PointsAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    EXPIRE = "expire"


class AlertCategory(str, Enum):
    THRESHOLD_CROSSED = "threshold_crossed"
    PENDING_REVIEW = "pending_review"
    APPROACHING_EXPIRATION = "approaching_expiration"


class AlertSeverity(str, Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Statuses whose points count toward the active total (until expiration).
COUNTING_STATUSES = frozenset({OccurrenceStatus.PENDING, OccurrenceStatus.APPROVED})

ABSENCE_TYPES = frozenset(
    {
        OccurrenceType.ABSENT,
        OccurrenceType.NO_CALL_NO_SHOW,
        OccurrenceType.UNEXCUSED_ABSENCE,
    }
)
