"""
Absence-request endpoints: live validation, lifecycle actions and history.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_acting_context, get_db
from leavedesk.core.exceptions import AuthorizationError
from leavedesk.models.absence_request import AbsenceRequest, Approval
from leavedesk.rules.eligibility import maternity_end_date
from leavedesk.rules.enums import AbsenceType, RequestStatus
from leavedesk.schemas.balance import BalanceRead
from leavedesk.schemas.reports import DeleteResponse
from leavedesk.schemas.request import (ApprovalRead, ConflictRead, DeleteRequest,
                                       EndMedicalLeave, HistoricalRequestCreate, MaternityRead,
                                       MaternityValidateRequest, RequestCreate, RequestRead,
                                       RequestUpdate, ReviewAction, ValidateRequest,
                                       ValidationResultRead)
from leavedesk.services import requests as request_service
from leavedesk.services.procedures import validate_maternity_leave
from leavedesk.services.repository import get_person_or_404
from leavedesk.services.validation import ActingContext, ValidationResult, validate_request

router = APIRouter(prefix="/requests", tags=["requests"])
logger = logging.getLogger(__name__)


def _maternity_read(result: ValidationResult, start) -> MaternityRead | None:
    terms = result.maternity
    if terms is None:
        return None
    return MaternityRead(
        valid=terms.valid,
        message=terms.message,
        clt_days=terms.clt_days,
        extension_days=terms.extension_days,
        total_days=terms.total_days,
        requires_exception_justification=terms.requires_exception_justification,
        end_date=maternity_end_date(start, terms.total_days) if terms.valid and start else None,
    )


# ── Validation ──────────────────────────────────────────────────────
@router.post("/validate", response_model=ValidationResultRead)
async def validate(
    body: ValidateRequest,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> ValidationResultRead:
    """Dry-run of the submission checks; nothing is written."""
    result = await validate_request(
        db,
        ctx,
        body.person_id or ctx.person_id,
        body.absence_type,
        body.start_date,
        body.end_date,
        requested_days=body.requested_days,
        sellback_days=body.sellback_days,
        expected_delivery_date=body.expected_delivery_date,
        contract_exception_justification=body.contract_exception_justification,
        exclude_request_id=body.exclude_request_id,
    )
    return ValidationResultRead(
        valid=result.valid,
        message=result.message,
        balance=BalanceRead.model_validate(result.balance) if result.balance else None,
        conflicts=[ConflictRead(**c) for c in result.conflict_dicts()],
        warnings=result.warnings,
        team_overlaps=result.team_overlaps,
        maternity=_maternity_read(result, body.start_date),
        end_date=result.end_date,
        requires_justification=result.requires_justification,
    )


@router.post("/maternity/validate", response_model=MaternityRead)
async def validate_maternity(
    body: MaternityValidateRequest,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> MaternityRead:
    person = await get_person_or_404(db, body.person_id or ctx.person_id)
    if not ctx.may_act_for(person):
        raise AuthorizationError("Você não tem acesso aos dados desta pessoa")
    terms = await validate_maternity_leave(db, person.id, body.start_date)
    return MaternityRead(
        valid=terms.valid,
        message=terms.message,
        clt_days=terms.clt_days,
        extension_days=terms.extension_days,
        total_days=terms.total_days,
        requires_exception_justification=terms.requires_exception_justification,
        end_date=maternity_end_date(body.start_date, terms.total_days) if terms.valid else None,
    )


# ── CRUD ────────────────────────────────────────────────────────────
@router.get("", response_model=list[RequestRead])
async def list_requests(
    status: RequestStatus | None = None,
    absence_type: AbsenceType | None = None,
    requester_id: int | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> list[AbsenceRequest]:
    return await request_service.list_requests(
        db, ctx, status, absence_type, requester_id, skip, limit
    )


@router.post("", response_model=RequestRead, status_code=201)
async def create_request(
    body: RequestCreate,
    submit: bool = True,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    """Save a draft (``submit=false``) or validate and submit in one step."""
    return await request_service.create_request(db, ctx, body, submit=submit)


@router.post("/historical", response_model=RequestRead, status_code=201)
async def create_historical_request(
    body: HistoricalRequestCreate,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    return await request_service.create_historical_request(db, ctx, body)


@router.get("/{request_id}", response_model=RequestRead)
async def get_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    return await request_service.get_request(db, ctx, request_id)


@router.put("/{request_id}", response_model=RequestRead)
async def update_request(
    request_id: int,
    body: RequestUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    return await request_service.update_draft(db, ctx, request_id, body)


@router.delete("/{request_id}", response_model=DeleteResponse)
async def delete_request(
    request_id: int,
    body: DeleteRequest | None = None,
    justification: str | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> DeleteResponse:
    reason = body.justification if body and body.justification else justification
    await request_service.delete_request(db, ctx, request_id, reason)
    return DeleteResponse(success=True, message="Solicitação excluída")


@router.get("/{request_id}/approvals", response_model=list[ApprovalRead])
async def list_approvals(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> list[Approval]:
    return await request_service.list_approvals(db, ctx, request_id)


# ── Lifecycle actions ──────────────────────────────────────────────
@router.post("/{request_id}/submit", response_model=RequestRead)
async def submit_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    return await request_service.submit_request(db, ctx, request_id)


@router.post("/{request_id}/approve", response_model=RequestRead)
async def approve_request(
    request_id: int,
    body: ReviewAction | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    return await request_service.approve_request(db, ctx, request_id, body.comment if body else None)


@router.post("/{request_id}/reject", response_model=RequestRead)
async def reject_request(
    request_id: int,
    body: ReviewAction,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    return await request_service.reject_request(db, ctx, request_id, body.comment)


@router.post("/{request_id}/request-info", response_model=RequestRead)
async def request_more_info(
    request_id: int,
    body: ReviewAction,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    return await request_service.request_more_info(db, ctx, request_id, body.comment)


@router.post("/{request_id}/cancel", response_model=RequestRead)
async def cancel_request(
    request_id: int,
    body: ReviewAction | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    return await request_service.cancel_request(db, ctx, request_id, body.comment if body else None)


@router.post("/{request_id}/end", response_model=RequestRead)
async def end_medical_leave(
    request_id: int,
    body: EndMedicalLeave | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> AbsenceRequest:
    """Close a medical leave (optionally earlier) and resolve its team capacity alert."""
    return await request_service.end_medical_leave(
        db, ctx, request_id, body.end_date if body else None
    )
