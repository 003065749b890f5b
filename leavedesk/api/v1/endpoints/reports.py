"""
Reporting endpoints: who is away today, plus health and status checks.

Each endpoint fetches what it needs in one query and aggregates in Python.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_acting_context, get_db
from leavedesk.models.absence_request import AbsenceRequest
from leavedesk.models.capacity_alert import TeamCapacityAlert
from leavedesk.models.person import Person
from leavedesk.rules.enums import RequestStatus
from leavedesk.rules.workflow import REVIEW_STATUSES
from leavedesk.schemas.reports import (ActiveAbsence, ActiveAbsencesResponse, CapacityAlertRead,
                                       HealthResponse, StatusResponse)
from leavedesk.services import capacity
from leavedesk.services.validation import ActingContext

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)

_ACTIVE_STATUSES = (RequestStatus.FINAL_APPROVED.value, RequestStatus.IN_PROGRESS.value)


def _active_on(day: date):
    return select(AbsenceRequest).where(
        AbsenceRequest.status.in_(_ACTIVE_STATUSES),
        AbsenceRequest.start_date <= day,
        AbsenceRequest.end_date >= day,
    )


# ── Active absences ─────────────────────────────────────────────────
@router.get("/reports/active-absences", response_model=ActiveAbsencesResponse)
async def active_absences(
    on: date | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> ActiveAbsencesResponse:
    """Approved absences covering *on* (default today). Non-privileged people see their own team."""
    day = on or date.today()
    query = _active_on(day).join(Person, AbsenceRequest.requester_id == Person.id)
    if not ctx.is_privileged:
        if ctx.person.team:
            query = query.where(Person.team == ctx.person.team)
        else:
            query = query.where(AbsenceRequest.requester_id == ctx.person_id)
    result = await db.execute(query.order_by(AbsenceRequest.end_date))
    requests = result.unique().scalars().all()

    absences = [
        ActiveAbsence(
            request_id=r.id,
            person_id=r.requester_id,
            person_name=r.requester.name,
            team=r.requester.team,
            absence_type=r.absence_type,
            status=r.status,
            start_date=r.start_date,
            end_date=r.end_date,
            days_remaining=(r.end_date - day).days + 1,
        )
        for r in requests
    ]
    return ActiveAbsencesResponse(
        on=day,
        total=len(absences),
        by_type=dict(Counter(a.absence_type for a in absences)),
        absences=absences,
    )


# ── Team capacity ───────────────────────────────────────────────────
@router.get("/reports/capacity-alerts", response_model=list[CapacityAlertRead])
async def capacity_alerts(
    team: str | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> list[TeamCapacityAlert]:
    """Open medical-leave capacity alerts. The board may filter by team; others see their own."""
    return await capacity.list_alerts(db, ctx, team)


# ── Health / Status ─────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check: database connectivity."""
    result = HealthResponse(db=False)
    try:
        await db.execute(select(1))
        result.db = True
    except SQLAlchemyError as e:
        logger.error("Health check DB failure: %s", e)
    return result


@router.get("/status", response_model=StatusResponse)
async def system_status(
    db: AsyncSession = Depends(get_db),
    _ctx: ActingContext = Depends(get_acting_context),
) -> StatusResponse:
    """Headcount, requests waiting for review and absences active today."""
    people_count = await db.execute(
        select(func.count(Person.id)).where(Person.is_active.is_(True))
    )
    review_count = await db.execute(
        select(func.count(AbsenceRequest.id)).where(
            AbsenceRequest.status.in_([s.value for s in REVIEW_STATUSES])
        )
    )
    today = date.today()
    active_count = await db.execute(
        select(func.count(AbsenceRequest.id)).where(
            AbsenceRequest.status.in_(_ACTIVE_STATUSES),
            AbsenceRequest.start_date <= today,
            AbsenceRequest.end_date >= today,
        )
    )
    return StatusResponse(
        total_people=people_count.scalar() or 0,
        pending_reviews=review_count.scalar() or 0,
        active_absences=active_count.scalar() or 0,
        status="operational",
    )
