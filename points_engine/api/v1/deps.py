"""
FastAPI dependencies — database session and the evaluation date.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date, datetime, timezone

from fastapi import Query
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.db.session import async_session_factory


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Evaluation date ─────────────────────────────────────────────────
def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def resolve_as_of(
    as_of: date | None = Query(default=None, description="Evaluate as of this date (default: today, UTC)"),
) -> date:
    return as_of or today_utc()
