"""
Attendance points engine — application entry point.

This is the **only** file that assembles the app. All business logic
lives in the `services/` package; `api/` only adapts it to HTTP.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from points_engine.api.v1.api import api_router
from points_engine.core.config import settings
from points_engine.core.exceptions import register_exception_handlers
from points_engine.db.base import Base
from points_engine.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from points_engine.models.alert import Alert  # noqa: F401
from points_engine.models.attendance_policy import AttendancePolicy  # noqa: F401
from points_engine.models.employee import Employee  # noqa: F401
from points_engine.models.occurrence import Occurrence, PointsHistory  # noqa: F401
from points_engine.services.policy import get_policy

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed and validate the policy; an invalid stored policy aborts startup
    async with async_session_factory() as session:
        policy = await get_policy(session)
        logger.info(
            "Attendance policy loaded: thresholds %g/%g/%g/%g, %d-day expiration window",
            policy.warning_threshold,
            policy.probation_threshold,
            policy.final_warning_threshold,
            policy.termination_threshold,
            policy.expiration_window_days,
        )

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Attendance occurrence & progressive-discipline points engine",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Engine errors map to typed JSON responses; nothing leaks a stack trace
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return application


app = create_app()
