"""
LeaveDesk: application entry point.

This is the **only** file that assembles the app. Business rules live in
``rules/``, persistence-aware workflows in ``services/`` and the HTTP
surface in ``api/``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import select

from leavedesk.api.v1.api import api_router
from leavedesk.core.config import settings
from leavedesk.core.exceptions import register_exception_handlers
from leavedesk.core.rate_limit import limiter
from leavedesk.core.security import get_password_hash
from leavedesk.db.base import Base
from leavedesk.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from leavedesk.models.absence_request import AbsenceRequest, Approval  # noqa: F401
from leavedesk.models.audit_log import AuditLog  # noqa: F401
from leavedesk.models.capacity_alert import TeamCapacityAlert  # noqa: F401
from leavedesk.models.pending_person import PendingPerson  # noqa: F401
from leavedesk.models.person import Person
from leavedesk.models.vacation_balance import VacationBalance  # noqa: F401
from leavedesk.rules.enums import Role
from leavedesk.services.requests import mark_elapsed

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

    async with async_session_factory() as session:
        # Seed the first board member on first run
        result = await session.execute(
            select(Person).where(Person.email == settings.FIRST_ADMIN_EMAIL)
        )
        if result.unique().scalar_one_or_none() is None:
            admin = Person(
                name="Administrador do Sistema",
                email=settings.FIRST_ADMIN_EMAIL,
                hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                role=Role.DIRECTOR.value,
                is_admin=True,
            )
            session.add(admin)
            await session.commit()
            logger.info(
                "Default admin created: %s (password: <redacted>)",
                settings.FIRST_ADMIN_EMAIL,
            )

        # Approved periods that started or ended while the service was down
        await mark_elapsed(session)

    logger.info("LeaveDesk v%s started", settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Absence requests, vacation balances and approval workflow",
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

    # Rate limiting (login / refresh)
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
