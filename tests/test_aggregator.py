"""Tests for employee and department summaries."""

from datetime import date

import pytest
from httpx import AsyncClient

from points_engine.core.enums import DisciplineStatus
from points_engine.services.aggregator import summarize_department, summarize_employee
from tests.factories import create_employee, make_employee, make_occurrence

AS_OF = date(2024, 6, 15)


def test_employee_summary_buckets_and_counts(policy):
    emp = make_employee("Dana Reyes")
    january = make_occurrence(emp, date(2024, 1, 10), type="tardy", status="approved", points=1)
    ledger = [
        january,
        make_occurrence(emp, date(2024, 4, 20), type="absent", status="pending", points=3),
        make_occurrence(emp, date(2024, 6, 3), type="tardy", status="approved", points=1),
        make_occurrence(emp, date(2024, 6, 5), type="early_out", status="excused", points=1),
        make_occurrence(emp, date(2023, 5, 1), type="tardy", status="expired", points=1),
        make_occurrence(emp, date(2024, 6, 10), type="no_call_no_show", status="disputed", points=5),
    ]

    summary = summarize_employee(emp, ledger, policy, AS_OF)

    assert summary.current_points == 5
    assert summary.status == DisciplineStatus.WARNING
    assert summary.max_points == 20
    assert summary.points_this_month == 1
    assert summary.points_this_quarter == 4
    assert summary.points_this_year == 5
    assert summary.occurrences_count == 5
    assert summary.counts_by_type["tardy"] == 3
    assert summary.counts_by_type["early_out"] == 0
    assert summary.tardy_count == 3
    assert summary.absent_count == 2
    assert summary.pending_review_count == 1
    assert summary.last_occurrence_date == date(2024, 6, 10)
    assert summary.next_expiration_date == january.expiration_date
    assert summary.next_expiration_points == 1
    assert summary.skipped == []


def test_employee_without_occurrences(policy):
    summary = summarize_employee(make_employee(), [], policy, AS_OF)
    assert summary.current_points == 0
    assert summary.status == DisciplineStatus.GOOD
    assert summary.last_occurrence_date is None
    assert summary.next_expiration_date is None


def test_malformed_entry_skipped_not_fatal(policy):
    emp = make_employee()
    bogus = make_occurrence(emp, date(2024, 6, 1), type="bogus", points=9)
    ledger = [make_occurrence(emp, date(2024, 6, 1), points=2), bogus]

    summary = summarize_employee(emp, ledger, policy, AS_OF)

    assert summary.current_points == 2
    assert [s.occurrence_id for s in summary.skipped] == [bogus.id]


def test_compliance_score_counts_at_risk_employees(policy):
    ledgers = []
    for i in range(10):
        emp = make_employee(f"Employee {i}")
        points = 5 if i < 3 else 1
        ledgers.append((emp, [make_occurrence(emp, date(2024, 6, 1), points=points)]))

    summary = summarize_department("OPS", ledgers, policy, AS_OF)

    assert summary.total_employees == 10
    assert summary.employees_at_risk == 3
    assert summary.compliance_score == 70.0


def test_department_rates(policy):
    e1, e2, e3, e4 = (make_employee(f"E{i}") for i in range(4))
    ledgers = [
        (e1, [make_occurrence(e1, date(2024, 6, 1), type="tardy", points=1)]),
        (e2, [make_occurrence(e2, date(2024, 6, 1), type="absent", points=3)]),
        (e3, []),
        (e4, [
            make_occurrence(e4, date(2024, 6, 1), type="tardy", points=1),
            make_occurrence(e4, date(2024, 6, 2), type="unexcused_absence", points=5),
        ]),
    ]

    summary = summarize_department("OPS", ledgers, policy, AS_OF)

    assert summary.department_name == "Operations"
    assert summary.employees_with_occurrences == 3
    assert summary.avg_points_per_employee == 2.5
    assert summary.tardy_rate == 50.0
    assert summary.absence_rate == 50.0
    assert summary.employees_at_risk == 1
    assert summary.compliance_score == 75.0


def test_empty_department_is_fully_compliant(policy):
    summary = summarize_department("NONE", [], policy, AS_OF)
    assert summary.total_employees == 0
    assert summary.compliance_score == 100.0


# ── API ─────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_employee_summary_endpoint(async_client: AsyncClient):
    emp_id = await create_employee(async_client, "SUM-001")
    for day in ("2024-06-01", "2024-06-02"):
        await async_client.post("/api/v1/occurrences", json={
            "employee_id": emp_id, "type": "absent", "occurrence_date": day, "status": "approved",
        })

    resp = await async_client.get(f"/api/v1/employees/{emp_id}/summary?as_of=2024-06-15")
    assert resp.status_code == 200
    data = resp.json()
    assert data["current_points"] == 4
    assert data["status"] == "warning"
    assert data["absent_count"] == 2


@pytest.mark.asyncio
async def test_department_summaries_endpoint(async_client: AsyncClient):
    risky = await create_employee(async_client, "DEP-001", department="WH")
    await create_employee(async_client, "DEP-002", department="WH")
    await create_employee(async_client, "DEP-003", department="HR")
    await async_client.post("/api/v1/occurrences", json={
        "employee_id": risky, "type": "no_call_no_show", "occurrence_date": "2024-06-01",
    })
    await async_client.post("/api/v1/occurrences", json={
        "employee_id": risky, "type": "tardy", "occurrence_date": "2024-06-02",
    })

    resp = await async_client.get("/api/v1/departments/WH/summary?as_of=2024-06-15")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_employees"] == 2
    assert data["employees_at_risk"] == 1
    assert data["compliance_score"] == 50.0

    listed = await async_client.get("/api/v1/departments/summary?as_of=2024-06-15")
    assert [d["department_code"] for d in listed.json()] == ["HR", "WH"]


@pytest.mark.asyncio
async def test_unknown_department_not_found(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/departments/NOPE/summary")
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_points_roster(async_client: AsyncClient):
    high = await create_employee(async_client, "ROS-001", name="Avery", department="WH")
    low = await create_employee(async_client, "ROS-002", name="Blake", department="WH")
    mid = await create_employee(async_client, "ROS-003", name="Casey", department="WH")
    await create_employee(async_client, "ROS-004", name="Drew", department="HR")
    occurrences = [(high, "absent"), (high, "absent"), (high, "absent"), (low, "tardy"), (mid, "absent"), (mid, "absent")]
    for day, (emp_id, kind) in enumerate(occurrences, start=1):
        resp = await async_client.post("/api/v1/occurrences", json={
            "employee_id": emp_id, "type": kind, "occurrence_date": f"2024-06-{day:02d}", "status": "approved",
        })
        assert resp.status_code == 201

    roster = await async_client.get("/api/v1/employees/summaries?as_of=2024-06-15")
    assert roster.status_code == 200
    assert [(s["employee_code"], s["current_points"], s["status"]) for s in roster.json()] == [
        ("ROS-001", 6, "probation"),
        ("ROS-003", 4, "warning"),
        ("ROS-002", 1, "good"),
        ("ROS-004", 0, "good"),
    ]

    warning = await async_client.get("/api/v1/employees/summaries?as_of=2024-06-15&status=warning")
    assert [s["employee_code"] for s in warning.json()] == ["ROS-003"]

    at_least = await async_client.get("/api/v1/employees/summaries?as_of=2024-06-15&min_points=4")
    assert [s["employee_code"] for s in at_least.json()] == ["ROS-001", "ROS-003"]

    hr = await async_client.get("/api/v1/employees/summaries?as_of=2024-06-15&department_code=HR")
    assert [s["employee_code"] for s in hr.json()] == ["ROS-004"]
