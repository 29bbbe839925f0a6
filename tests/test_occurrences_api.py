"""Tests for ingestion, ledger and review endpoints."""

import pytest
from httpx import AsyncClient

from tests.factories import RECENT, create_employee


async def _record(client: AsyncClient, emp_id: int, **fields) -> dict:
    body = {"employee_id": emp_id, "type": "tardy", "occurrence_date": "2024-03-01", **fields}
    resp = await client.post("/api/v1/occurrences", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_ingest_batch(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "API-001")
    resp = await async_client.post("/api/v1/attendance/events", json={"events": [
        {"event_id": "t-1", "employee_id": emp_id, "date": "2024-03-01", "is_late": True, "late_minutes": 15},
        {"event_id": "t-2", "employee_id": emp_id, "date": "2024-03-02", "status": "present"},
        {"event_id": "t-3", "employee_id": emp_id, "date": "2024-03-03", "is_no_call_no_show": True},
        {
            "event_id": "t-4", "employee_id": emp_id, "date": "2024-03-04", "status": "absent",
            "exception_approved": True, "exception_reason": "jury duty",
        },
    ]})
    assert resp.status_code == 200
    data = resp.json()
    assert data["received"] == 4
    assert data["compliant"] == 1
    assert data["recorded"] == 3
    assert [(o["type"], o["status"], o["points"]) for o in data["occurrences"]] == [
        ("tardy", "pending", 1),
        ("no_call_no_show", "pending", 3),
        ("absent", "excused", 2),
    ]

    ledger = await async_client.get(f"/api/v1/employees/{emp_id}/ledger?as_of=2024-03-10")
    assert ledger.json()["active_points"] == 4
    assert ledger.json()["status"] == "warning"


@pytest.mark.asyncio
async def test_reingest_returns_existing_occurrence(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "API-020")
    batch = {"events": [
        {"event_id": "r-1", "employee_id": emp_id, "date": "2024-03-01", "status": "absent"},
    ]}
    first = await async_client.post("/api/v1/attendance/events", json=batch)
    stored = first.json()["occurrences"][0]

    resp = await async_client.post("/api/v1/attendance/events", json=batch)
    assert resp.status_code == 200
    data = resp.json()
    assert data["recorded"] == 0
    assert data["duplicates"] == 1
    assert data["occurrences"] == []
    assert [(o["id"], o["source_event_id"]) for o in data["existing"]] == [(stored["id"], "r-1")]


@pytest.mark.asyncio
async def test_ingest_unknown_employee(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/attendance/events", json={"events": [
        {"employee_id": 31337, "date": "2024-03-01", "is_late": True},
    ]})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_new_occurrence_cannot_start_disputed(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "API-002")
    resp = await async_client.post("/api/v1/occurrences", json={
        "employee_id": emp_id, "type": "tardy", "occurrence_date": "2024-03-01", "status": "disputed",
    })
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_and_filter_occurrences(async_client: AsyncClient):
    first = await create_employee(async_client, "API-003", name="Ada Quinn", department="WH")
    second = await create_employee(async_client, "API-004", name="Ben Ortiz", department="HR")
    await _record(async_client, first)
    await _record(async_client, first, type="absent")
    await _record(async_client, second)

    resp = await async_client.get("/api/v1/occurrences?department_code=WH")
    assert len(resp.json()) == 2
    resp = await async_client.get("/api/v1/occurrences?type=tardy")
    assert len(resp.json()) == 2
    resp = await async_client.get("/api/v1/occurrences?search=Ortiz")
    assert [o["employee_id"] for o in resp.json()] == [second]


@pytest.mark.asyncio
async def test_review_flow(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "API-005")
    occ = await _record(async_client, emp_id, occurrence_date=RECENT.isoformat())

    approved = await async_client.post(
        f"/api/v1/occurrences/{occ['id']}/approve",
        json={"supervisor_id": "sup-7", "expected_version": occ["version"]},
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["version"] == 2

    excused = await async_client.post(
        f"/api/v1/occurrences/{occ['id']}/excuse",
        json={"supervisor_id": "sup-7", "notes": "shift swap approved late"},
    )
    assert excused.json()["status"] == "excused"

    again = await async_client.post(
        f"/api/v1/occurrences/{occ['id']}/approve", json={"supervisor_id": "sup-7"},
    )
    assert again.status_code == 409
    assert again.json()["error"] == "invalid_transition"

    history = await async_client.get(f"/api/v1/employees/{emp_id}/points-history")
    assert [(h["action"], h["points_change"]) for h in history.json()] == [("add", 1), ("remove", -1)]


@pytest.mark.asyncio
async def test_blank_supervisor_rejected(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "API-006")
    occ = await _record(async_client, emp_id)
    resp = await async_client.post(f"/api/v1/occurrences/{occ['id']}/approve", json={"supervisor_id": "  "})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_two_excuses_one_conflict(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "API-007")
    occ = await _record(async_client, emp_id)
    body = {"supervisor_id": "sup-1", "expected_version": occ["version"]}

    first = await async_client.post(f"/api/v1/occurrences/{occ['id']}/excuse", json=body)
    second = await async_client.post(
        f"/api/v1/occurrences/{occ['id']}/excuse", json={**body, "supervisor_id": "sup-2"},
    )

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error"] == "conflict"
    assert second.json()["success"] is False

    current = await async_client.get(f"/api/v1/occurrences/{occ['id']}")
    assert current.json()["supervisor_id"] == "sup-1"


@pytest.mark.asyncio
async def test_dispute_endpoint(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "API-008")
    occ = await _record(async_client, emp_id)

    resp = await async_client.post(
        f"/api/v1/occurrences/{occ['id']}/dispute", json={"reason": "was on approved break"},
    )
    assert resp.json()["status"] == "disputed"

    ledger = await async_client.get(f"/api/v1/employees/{emp_id}/ledger?as_of=2024-03-10")
    assert ledger.json()["active_points"] == 0


@pytest.mark.asyncio
async def test_sweep_endpoint(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "API-009")
    occ = await _record(async_client, emp_id, occurrence_date="2023-03-01")

    early = await async_client.post("/api/v1/occurrences/sweep", json={"as_of": "2024-02-28"})
    assert early.json()["expired"] == 0

    resp = await async_client.post("/api/v1/occurrences/sweep", json={"as_of": "2024-02-29"})
    assert resp.json() == {"as_of": "2024-02-29", "expired": 1}

    current = await async_client.get(f"/api/v1/occurrences/{occ['id']}")
    assert current.json()["status"] == "expired"


@pytest.mark.asyncio
async def test_occurrence_not_found(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/occurrences/12345")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"db": True}
