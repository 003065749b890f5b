"""
People endpoints: admin CRUD, self-service profile, day-off status and
the pending-registration workflow.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import (get_acting_context, get_current_active_person, get_db,
                                   require_privileged)
from leavedesk.core.exceptions import AuthorizationError
from leavedesk.models.pending_person import PendingPerson
from leavedesk.models.person import Person
from leavedesk.rules.enums import PendingPersonStatus
from leavedesk.schemas.person import (DayOffStatusRead, PendingApproval, PendingPersonCreate,
                                      PendingPersonRead, PendingRejection, PersonCreate,
                                      PersonRead, PersonUpdate, ProcedureResult, ProfileUpdate)
from leavedesk.services import people as people_service
from leavedesk.services.repository import get_person_or_404
from leavedesk.services.validation import ActingContext

router = APIRouter(tags=["people"])
logger = logging.getLogger(__name__)


# ── People ──────────────────────────────────────────────────────────
@router.get("/people", response_model=list[PersonRead])
async def list_people(
    include_inactive: bool = False,
    team: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    _person: Person = Depends(get_current_active_person),
) -> list[Person]:
    return await people_service.list_people(db, include_inactive, team, skip, limit)


@router.post("/people", response_model=PersonRead, status_code=201)
async def create_person(
    body: PersonCreate,
    db: AsyncSession = Depends(get_db),
    actor: Person = Depends(require_privileged),
) -> Person:
    return await people_service.create_person(db, actor, body)


@router.put("/people/me/profile", response_model=PersonRead)
async def update_my_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current: Person = Depends(get_current_active_person),
) -> Person:
    """First-access setup: birth date, contract start and contract model."""
    return await people_service.update_profile(db, current, body)


@router.get("/people/{person_id}", response_model=PersonRead)
async def get_person(
    person_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> Person:
    person = await get_person_or_404(db, person_id)
    if not ctx.may_act_for(person):
        raise AuthorizationError("Você não tem acesso aos dados desta pessoa")
    return person


@router.put("/people/{person_id}", response_model=PersonRead)
async def update_person(
    person_id: int,
    body: PersonUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Person = Depends(require_privileged),
) -> Person:
    return await people_service.update_person(db, actor, person_id, body)


@router.delete("/people/{person_id}", response_model=PersonRead)
async def deactivate_person(
    person_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Person = Depends(require_privileged),
) -> Person:
    """Soft delete: people referenced by requests are never removed."""
    return await people_service.deactivate_person(db, actor, person_id)


@router.get("/people/{person_id}/day-off", response_model=DayOffStatusRead)
async def day_off_status(
    person_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> DayOffStatusRead:
    result = await people_service.get_day_off_status(db, ctx, person_id)
    return DayOffStatusRead(
        available=result.available,
        can_request=result.can_request,
        message=result.message,
        window_start=result.window.start if result.window else None,
        window_end=result.window.end if result.window else None,
    )


# ── Pending registrations ──────────────────────────────────────────
@router.get("/pending-people", response_model=list[PendingPersonRead])
async def list_pending_people(
    status: PendingPersonStatus | None = None,
    db: AsyncSession = Depends(get_db),
    current: Person = Depends(get_current_active_person),
) -> list[PendingPerson]:
    return await people_service.list_pending_people(db, current, status)


@router.post("/pending-people", response_model=PendingPersonRead, status_code=201)
async def create_pending_person(
    body: PendingPersonCreate,
    db: AsyncSession = Depends(get_db),
    current: Person = Depends(get_current_active_person),
) -> PendingPerson:
    return await people_service.create_pending_person(db, current, body)


def _procedure_response(result: dict) -> ProcedureResult:
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["message"])
    return ProcedureResult(**result)


@router.post("/pending-people/{pending_id}/approve", response_model=ProcedureResult)
async def approve_pending_person(
    pending_id: int,
    body: PendingApproval | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Person = Depends(require_privileged),
) -> ProcedureResult:
    body = body or PendingApproval()
    result = await people_service.approve_pending_person(db, actor, pending_id, body.overrides, body.notes)
    return _procedure_response(result)


@router.post("/pending-people/{pending_id}/reject", response_model=ProcedureResult)
async def reject_pending_person(
    pending_id: int,
    body: PendingRejection,
    db: AsyncSession = Depends(get_db),
    actor: Person = Depends(require_privileged),
) -> ProcedureResult:
    result = await people_service.reject_pending_person(db, actor, pending_id, body.reason)
    return _procedure_response(result)
