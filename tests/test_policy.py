"""Tests for policy validation, storage and the /policy endpoints."""

import pytest
from httpx import AsyncClient

from points_engine.core.enums import DisciplineStatus, OccurrenceType
from points_engine.core.exceptions import InvalidPolicy
from points_engine.services.policy import load_policy
from tests.factories import create_employee

VALID = {
    "pointsPerTardy": 1,
    "pointsPerAbsent": 3,
    "pointsPerEarlyOut": 0.5,
    "pointsPerNoCallNoShow": 5,
    "pointsPerUnexcusedAbsence": 2,
    "warningThreshold": 5,
    "probationThreshold": 10,
    "finalWarningThreshold": 15,
    "terminationThreshold": 20,
}


def test_load_valid_policy():
    policy = load_policy(VALID)
    assert policy.points_for(OccurrenceType.EARLY_OUT) == 0.5
    assert policy.points_for("no_call_no_show") == 5
    assert policy.expiration_window_days == 365
    assert policy.thresholds()[0] == (DisciplineStatus.TERMINATION, 20)


def test_snake_case_names_accepted():
    raw = {
        "points_per_tardy": 1,
        "points_per_absent": 3,
        "points_per_early_out": 1,
        "points_per_no_call_no_show": 5,
        "points_per_unexcused_absence": 2,
        "warning_threshold": 5,
        "probation_threshold": 10,
        "final_warning_threshold": 15,
        "termination_threshold": 20,
    }
    assert load_policy(raw).warning_threshold == 5


@pytest.mark.parametrize(
    "change",
    [
        {"probationThreshold": 5},
        {"finalWarningThreshold": 9},
        {"terminationThreshold": 1},
    ],
)
def test_non_increasing_thresholds_rejected(change):
    with pytest.raises(InvalidPolicy, match="strictly increasing"):
        load_policy({**VALID, **change})


def test_missing_option_rejected():
    raw = dict(VALID)
    del raw["pointsPerAbsent"]
    with pytest.raises(InvalidPolicy, match="pointsPerAbsent"):
        load_policy(raw)


def test_unknown_option_rejected():
    with pytest.raises(InvalidPolicy):
        load_policy({**VALID, "pointsPerSneeze": 1})


@pytest.mark.parametrize(
    "change",
    [{"pointsPerTardy": -1}, {"warningThreshold": 0}, {"expirationWindowDays": 0}],
)
def test_out_of_range_values_rejected(change):
    with pytest.raises(InvalidPolicy):
        load_policy({**VALID, **change})


# ── API ─────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_get_policy_seeds_defaults(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/policy")
    assert resp.status_code == 200
    data = resp.json()
    assert data["pointsPerTardy"] == 1
    assert data["pointsPerNoCallNoShow"] == 3
    assert data["warningThreshold"] == 4
    assert data["terminationThreshold"] == 10
    assert data["expirationWindowDays"] == 365


@pytest.mark.asyncio
async def test_partial_update(async_client: AsyncClient):
    resp = await async_client.put("/api/v1/policy", json={"pointsPerTardy": 0.5, "expirationWindowDays": 180})
    assert resp.status_code == 200
    assert resp.json()["pointsPerTardy"] == 0.5

    again = await async_client.get("/api/v1/policy")
    assert again.json()["expirationWindowDays"] == 180
    assert again.json()["warningThreshold"] == 4


@pytest.mark.asyncio
async def test_update_breaking_ladder_rejected(async_client: AsyncClient):
    resp = await async_client.put("/api/v1/policy", json={"probationThreshold": 4})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "invalid_policy"
    assert body["success"] is False

    # Stored policy untouched
    current = await async_client.get("/api/v1/policy")
    assert current.json()["probationThreshold"] == 6


@pytest.mark.asyncio
async def test_point_change_not_retroactive(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "RETRO-001")
    first = await async_client.post("/api/v1/occurrences", json={
        "employee_id": emp_id, "type": "tardy", "occurrence_date": "2024-03-01",
    })
    assert first.json()["points"] == 1

    await async_client.put("/api/v1/policy", json={"pointsPerTardy": 2})
    second = await async_client.post("/api/v1/occurrences", json={
        "employee_id": emp_id, "type": "tardy", "occurrence_date": "2024-03-02",
    })
    assert second.json()["points"] == 2

    unchanged = await async_client.get(f"/api/v1/occurrences/{first.json()['id']}")
    assert unchanged.json()["points"] == 1
