"""
Status evaluator — maps an active point total to a discipline tier.

Thresholds are inclusive lower bounds; the highest one met wins.
"""

from __future__ import annotations

from points_engine.core.enums import DisciplineStatus
from points_engine.schemas.policy import PolicyConfiguration

_RANKS = {tier: rank for rank, tier in enumerate(DisciplineStatus)}


def status_rank(status: DisciplineStatus | str) -> int:
    return _RANKS[DisciplineStatus(status)]


def evaluate_status(total_points: float, policy: PolicyConfiguration) -> DisciplineStatus:
    for tier, threshold in policy.thresholds():
        if total_points >= threshold:
            return tier
    return DisciplineStatus.GOOD


def is_at_risk(status: DisciplineStatus) -> bool:
    return status != DisciplineStatus.GOOD
