"""
Persistence boundary: the only place that builds queries for people and
requests. Rules receive plain model instances from here and never talk to
the database themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.exceptions import BackendError, NotFoundError
from leavedesk.models.absence_request import AbsenceRequest, Approval
from leavedesk.models.person import Person
from leavedesk.rules.enums import AbsenceType, RequestStatus
from leavedesk.rules.workflow import ensure_transition

logger = logging.getLogger(__name__)


# ── Transactions ────────────────────────────────────────────────────
async def commit(db: AsyncSession) -> None:
    """Commit the unit of work; integrity errors propagate, anything else becomes a BackendError."""
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Commit failed: %s", exc)
        raise BackendError("Falha ao gravar no banco de dados") from exc


# ── People ──────────────────────────────────────────────────────────
async def fetch_person(db: AsyncSession, person_id: int, lock: bool = False) -> Person | None:
    query = select(Person).where(Person.id == person_id).execution_options(populate_existing=True)
    if lock:
        # Serialises concurrent submissions by the same requester (no-op on SQLite)
        query = query.with_for_update(of=Person)
    result = await db.execute(query)
    return result.unique().scalar_one_or_none()


async def get_person_or_404(db: AsyncSession, person_id: int, lock: bool = False) -> Person:
    person = await fetch_person(db, person_id, lock=lock)
    if person is None:
        raise NotFoundError("Pessoa não encontrada")
    return person


async def fetch_person_by_email(db: AsyncSession, email: str) -> Person | None:
    result = await db.execute(select(Person).where(Person.email == email.strip().lower()))
    return result.unique().scalar_one_or_none()


# ── Requests ────────────────────────────────────────────────────────
async def fetch_request(db: AsyncSession, request_id: int) -> AbsenceRequest:
    result = await db.execute(
        select(AbsenceRequest)
        .where(AbsenceRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = result.unique().scalar_one_or_none()
    if request is None:
        raise NotFoundError("Solicitação não encontrada")
    return request


async def fetch_requests_for_person(
    db: AsyncSession,
    person_id: int,
    absence_type: AbsenceType | None = None,
) -> list[AbsenceRequest]:
    query = (
        select(AbsenceRequest)
        .where(AbsenceRequest.requester_id == person_id)
        .execution_options(populate_existing=True)
    )
    if absence_type is not None:
        query = query.where(AbsenceRequest.absence_type == absence_type.value)
    result = await db.execute(query.order_by(AbsenceRequest.start_date))
    return list(result.unique().scalars().all())


async def fetch_overlapping_requests(
    db: AsyncSession,
    absence_type: AbsenceType | None,
    start: date,
    end: date,
    statuses: Sequence[RequestStatus],
    exclude_requester_id: int | None = None,
    exclude_request_id: int | None = None,
) -> list[AbsenceRequest]:
    """Requests whose period intersects [start, end] (inclusive on both ends)."""
    query = select(AbsenceRequest).where(
        AbsenceRequest.start_date.is_not(None),
        AbsenceRequest.end_date.is_not(None),
        AbsenceRequest.start_date <= end,
        AbsenceRequest.end_date >= start,
        AbsenceRequest.status.in_([s.value for s in statuses]),
    ).execution_options(populate_existing=True)
    if absence_type is not None:
        query = query.where(AbsenceRequest.absence_type == absence_type.value)
    if exclude_requester_id is not None:
        query = query.where(AbsenceRequest.requester_id != exclude_requester_id)
    if exclude_request_id is not None:
        query = query.where(AbsenceRequest.id != exclude_request_id)
    result = await db.execute(query.order_by(AbsenceRequest.start_date))
    return list(result.unique().scalars().all())


async def persist_request(db: AsyncSession, request: AbsenceRequest) -> AbsenceRequest:
    """Stage *request* in the current transaction and assign its id."""
    db.add(request)
    await db.flush()
    return request


async def update_request_status(
    db: AsyncSession,
    request: AbsenceRequest,
    target: RequestStatus,
) -> AbsenceRequest:
    """Move *request* along one legal edge of the state machine (raises otherwise)."""
    previous = request.status
    request.status = ensure_transition(previous, target).value
    await db.flush()
    logger.info("Request %s: %s -> %s", request.id, previous, request.status)
    return request


async def fetch_approvals(db: AsyncSession, request_id: int) -> list[Approval]:
    result = await db.execute(
        select(Approval).where(Approval.request_id == request_id).order_by(Approval.id)
    )
    return list(result.scalars().all())
