"""
Policy endpoints — the configurable points table and escalation ladder.

Singleton pattern: only one row in attendance_policy. GET retrieves it,
PUT merges a partial update and validates the result as a whole. If no row
exists, one is created from the configured defaults on first access.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.api.v1.deps import get_db
from points_engine.schemas.policy import PolicyConfiguration
from points_engine.services import policy as policy_service

router = APIRouter(tags=["policy"])


@router.get("/policy", response_model=PolicyConfiguration)
async def get_policy(db: AsyncSession = Depends(get_db)) -> PolicyConfiguration:
    """Get the current attendance points policy."""
    return await policy_service.get_policy(db)


@router.put("/policy", response_model=PolicyConfiguration)
async def update_policy(
    body: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
) -> PolicyConfiguration:
    """Update point values, thresholds or windows.

    New values apply to occurrences recorded from now on; existing
    occurrences keep the points they were assessed with.
    """
    return await policy_service.update_policy(db, body)
