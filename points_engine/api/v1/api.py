"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from points_engine.api.v1.endpoints import (alerts, employees, occurrences,
                                            policy, reports)

api_router = APIRouter()

# Policy table and escalation thresholds
api_router.include_router(policy.router)

# Summaries and health; ahead of employees so /employees/summaries is not
# taken for /employees/{employee_id}
api_router.include_router(reports.router)

# Employees
api_router.include_router(employees.router)

# Event ingestion, ledger, review actions, expiration sweeps
api_router.include_router(occurrences.router)

# Alert scans and acknowledgement
api_router.include_router(alerts.router)
