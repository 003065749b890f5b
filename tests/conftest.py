"""
Shared test fixtures for the LeaveDesk test suite.

Every test that touches the database gets a fresh in-memory SQLite engine
(aiosqlite + StaticPool) created inside its own event loop; the app's
``get_db`` dependency is pointed at that engine.
"""

import os
import sys
from datetime import date
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leavedesk.api.v1.deps import get_db
from leavedesk.core.security import create_access_token, get_password_hash
from leavedesk.db.base import Base
from leavedesk.main import app
from leavedesk.models.absence_request import AbsenceRequest
from leavedesk.models.person import Person
from leavedesk.rules.enums import AbsenceType, ContractModel, RequestStatus, Role

_state: dict = {}


@pytest.fixture
async def db_engine():
    """Create all tables before usage and drop after."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    _state["factory"] = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    _state.clear()


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with _state["factory"]() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
async def async_client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with _state["factory"]() as session:
        yield session


# ── Factories ───────────────────────────────────────────────────────
@pytest.fixture
def make_person(db_session):
    counter = {"n": 0}

    async def _make(
        name: str | None = None,
        role: Role = Role.CONTRIBUTOR,
        team: str | None = "Plataforma",
        manager: Person | None = None,
        contract_start: date | None = date(2020, 1, 15),
        contract_model: ContractModel | None = ContractModel.CLT,
        birth_date: date | None = date(1990, 6, 10),
        is_admin: bool = False,
        password: str | None = None,
        maternity_extension_days: int = 0,
        is_active: bool = True,
    ) -> Person:
        counter["n"] += 1
        name = name or f"Pessoa {counter['n']}"
        person = Person(
            name=name,
            email=f"{name.lower().replace(' ', '.')}.{counter['n']}@example.com",
            hashed_password=get_password_hash(password) if password else None,
            role=role.value,
            team=team,
            manager_id=manager.id if manager else None,
            contract_start=contract_start,
            contract_model=contract_model.value if contract_model else None,
            birth_date=birth_date,
            is_admin=is_admin,
            maternity_extension_days=maternity_extension_days,
            is_active=is_active,
        )
        db_session.add(person)
        await db_session.commit()
        return person

    return _make


@pytest.fixture
def make_request(db_session):
    async def _make(
        requester: Person,
        start: date | None,
        end: date | None = None,
        absence_type: AbsenceType = AbsenceType.VACATION,
        status: RequestStatus = RequestStatus.FINAL_APPROVED,
        **extra,
    ) -> AbsenceRequest:
        request = AbsenceRequest(
            requester_id=requester.id,
            absence_type=absence_type.value,
            start_date=start,
            end_date=end if end is not None else start,
            status=status.value,
            **extra,
        )
        db_session.add(request)
        await db_session.commit()
        return request

    return _make


@pytest.fixture
def auth_headers():
    """Bearer header for a person, as the login endpoint would issue it."""

    def _headers(person: Person) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(person.id)}"}

    return _headers
