"""Tests for the discipline status evaluator."""

import pytest

from points_engine.core.enums import DisciplineStatus
from points_engine.services.status import evaluate_status, is_at_risk, status_rank


@pytest.mark.parametrize(
    "total, expected",
    [
        (0, DisciplineStatus.GOOD),
        (4.5, DisciplineStatus.GOOD),
        (5, DisciplineStatus.WARNING),
        (9, DisciplineStatus.WARNING),
        (10, DisciplineStatus.PROBATION),
        (14.99, DisciplineStatus.PROBATION),
        (15, DisciplineStatus.FINAL_WARNING),
        (20, DisciplineStatus.TERMINATION),
        (47, DisciplineStatus.TERMINATION),
    ],
)
def test_thresholds_are_inclusive_lower_bounds(policy, total, expected):
    assert evaluate_status(total, policy) == expected


def test_status_never_decreases_as_points_grow(policy):
    ranks = [status_rank(evaluate_status(x / 2, policy)) for x in range(0, 60)]
    assert ranks == sorted(ranks)


def test_rank_accepts_stored_strings():
    assert status_rank("final_warning") > status_rank(DisciplineStatus.PROBATION)


def test_only_good_is_not_at_risk():
    assert not is_at_risk(DisciplineStatus.GOOD)
    assert all(is_at_risk(s) for s in DisciplineStatus if s != DisciplineStatus.GOOD)
