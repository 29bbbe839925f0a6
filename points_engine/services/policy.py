"""
Policy store — loads, validates and updates the singleton policy row.

A stored or submitted configuration that fails validation raises
``InvalidPolicy``; thresholds are never clamped or reordered.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from points_engine.core.config import settings
from points_engine.core.exceptions import InvalidPolicy
from points_engine.models.attendance_policy import AttendancePolicy
from points_engine.schemas.policy import PolicyConfiguration

logger = logging.getLogger(__name__)

_POLICY_FIELDS = tuple(PolicyConfiguration.model_fields)
# snake_case field name -> camelCase option name
_ALIASES = {name: field.alias or name for name, field in PolicyConfiguration.model_fields.items()}


def load_policy(raw: Mapping[str, Any]) -> PolicyConfiguration:
    """Validate a raw option mapping into a ``PolicyConfiguration``."""
    try:
        return PolicyConfiguration.model_validate(dict(raw))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'policy'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidPolicy(f"Invalid attendance policy: {problems}") from exc


def policy_from_row(row: AttendancePolicy) -> PolicyConfiguration:
    return load_policy({field: getattr(row, field) for field in _POLICY_FIELDS})


async def _get_or_create_policy_row(db: AsyncSession) -> AttendancePolicy:
    """Fetch the singleton policy row, creating it from settings if absent."""
    result = await db.execute(select(AttendancePolicy).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        seed = load_policy(settings.default_policy())
        row = AttendancePolicy(id=1, **seed.model_dump())
        db.add(row)
        await db.commit()
        await db.refresh(row)
        logger.info("Created default attendance policy")
    return row


async def get_policy(db: AsyncSession) -> PolicyConfiguration:
    return policy_from_row(await _get_or_create_policy_row(db))


async def update_policy(db: AsyncSession, changes: Mapping[str, Any]) -> PolicyConfiguration:
    """Merge ``changes`` over the current policy and persist the result.

    The merged configuration is validated as a whole, so a change that makes
    the thresholds non-monotonic is rejected even if each value is fine.
    """
    row = await _get_or_create_policy_row(db)
    current = policy_from_row(row).model_dump(by_alias=True)
    merged = load_policy({**current, **{_ALIASES.get(k, k): v for k, v in changes.items()}})

    for field, value in merged.model_dump().items():
        setattr(row, field, value)
    await db.commit()
    await db.refresh(row)
    logger.info("Attendance policy updated: %s", dict(changes))
    return merged
