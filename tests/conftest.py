"""
Shared test fixtures for the attendance points engine test suite.

Async throughout (aiosqlite + AsyncSession).
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from points_engine.api.v1.deps import get_db
from points_engine.db.base import Base
from points_engine.main import app
from points_engine.schemas.policy import PolicyConfiguration

# One in-memory database shared by the app and direct session fixtures.
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct service calls in tests."""
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def policy() -> PolicyConfiguration:
    """Thresholds 5/10/15/20, one point per tardy."""
    return PolicyConfiguration(
        pointsPerTardy=1,
        pointsPerAbsent=3,
        pointsPerEarlyOut=1,
        pointsPerNoCallNoShow=5,
        pointsPerUnexcusedAbsence=2,
        warningThreshold=5,
        probationThreshold=10,
        finalWarningThreshold=15,
        terminationThreshold=20,
    )


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Open independent sessions, e.g. two supervisors racing on one row."""
    return TestingSessionLocal
