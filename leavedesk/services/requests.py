"""
Absence-request lifecycle.

Every public coroutine here is one unit of work: it validates, mutates and
commits, or raises before anything is written. Submission re-runs the
validation orchestrator under a row lock on the requester, so two
concurrent submissions by the same person are checked one after the other.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.exceptions import AuthorizationError, ValidationError
from leavedesk.models.absence_request import AbsenceRequest, Approval
from leavedesk.models.person import Person
from leavedesk.rules.eligibility import check_sellback, has_used_day_off
from leavedesk.rules.enums import AbsenceType, ApprovalAction, ApprovalLevel, RequestStatus
from leavedesk.rules.workflow import (deletion_requires_justification, ensure_can_cancel,
                                      ensure_can_edit, ensure_can_review, ensure_transition,
                                      submission_path)
from leavedesk.schemas.request import HistoricalRequestCreate, RequestCreate, RequestUpdate
from leavedesk.services import audit, capacity
from leavedesk.services.repository import (commit, fetch_approvals, fetch_request,
                                           fetch_requests_for_person, get_person_or_404,
                                           persist_request, update_request_status)
from leavedesk.services.validation import ActingContext, check_conflicts, validate_request

logger = logging.getLogger(__name__)

S = RequestStatus


def _snapshot(request: AbsenceRequest) -> dict:
    return {
        "requester_id": request.requester_id,
        "absence_type": request.absence_type,
        "start_date": request.start_date,
        "end_date": request.end_date,
        "status": request.status,
        "sellback_days": request.sellback_days,
    }


def _add_approval(
    db: AsyncSession,
    request: AbsenceRequest,
    actor: Person,
    action: ApprovalAction,
    level: ApprovalLevel,
    comment: str | None = None,
) -> Approval:
    approval = Approval(
        request_id=request.id,
        approver_id=actor.id,
        action=action.value,
        level=level.value,
        comment=comment,
    )
    db.add(approval)
    return approval


def _require_comment(comment: str | None, message: str) -> str:
    if not comment or not comment.strip():
        raise ValidationError(message)
    return comment.strip()


# ── Visibility ──────────────────────────────────────────────────────
def _can_view(ctx: ActingContext, request: AbsenceRequest) -> bool:
    if ctx.is_privileged or request.requester_id == ctx.person_id:
        return True
    requester = request.requester
    return requester is not None and requester.manager_id == ctx.person_id


async def list_requests(
    db: AsyncSession,
    ctx: ActingContext,
    status: RequestStatus | None = None,
    absence_type: AbsenceType | None = None,
    requester_id: int | None = None,
    skip: int = 0,
    limit: int = 100,
) -> list[AbsenceRequest]:
    """Board sees everything, managers their own and their reports', everyone else their own."""
    query = select(AbsenceRequest).join(Person, AbsenceRequest.requester_id == Person.id)
    if not ctx.is_privileged:
        query = query.where(
            or_(AbsenceRequest.requester_id == ctx.person_id, Person.manager_id == ctx.person_id)
        )
    if status is not None:
        query = query.where(AbsenceRequest.status == status.value)
    if absence_type is not None:
        query = query.where(AbsenceRequest.absence_type == absence_type.value)
    if requester_id is not None:
        query = query.where(AbsenceRequest.requester_id == requester_id)
    query = query.order_by(AbsenceRequest.created_at.desc(), AbsenceRequest.id.desc())
    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.unique().scalars().all())


async def get_request(db: AsyncSession, ctx: ActingContext, request_id: int) -> AbsenceRequest:
    request = await fetch_request(db, request_id)
    if not _can_view(ctx, request):
        raise AuthorizationError("Você não tem acesso a esta solicitação")
    return request


async def list_approvals(db: AsyncSession, ctx: ActingContext, request_id: int) -> list[Approval]:
    await get_request(db, ctx, request_id)
    return await fetch_approvals(db, request_id)


# ── Submission ──────────────────────────────────────────────────────
async def _submit(
    db: AsyncSession,
    ctx: ActingContext,
    request: AbsenceRequest,
    today: date | None = None,
) -> AbsenceRequest:
    ensure_transition(request.status, S.PENDING)
    requester = await get_person_or_404(db, request.requester_id, lock=True)

    result = await validate_request(
        db,
        ctx,
        requester.id,
        request.absence_type,
        request.start_date,
        request.end_date,
        sellback_days=request.sellback_days or 0,
        expected_delivery_date=request.expected_delivery_date,
        contract_exception_justification=request.contract_exception_justification,
        exclude_request_id=request.id,
        today=today,
    )
    result.raise_for_failure()
    if result.team_overlaps and not (request.justification or "").strip():
        raise ValidationError(
            "Há colegas do mesmo time ausentes neste período: "
            + "; ".join(result.team_overlaps)
            + ". Informe uma justificativa."
        )

    if request.end_date is None:
        request.end_date = result.end_date
    refs = sorted({r.id for c in result.conflicts for r in c.requests})
    request.has_conflict = bool(refs or result.team_overlaps)
    request.conflict_refs = refs or None
    request.is_contract_exception = bool(
        result.maternity is not None and result.maternity.extension_days > 0
    )

    path = submission_path(requester.manager, ctx.is_privileged)
    for status in path:
        await update_request_status(db, request, status)
    if path[-1] == S.FINAL_APPROVED:
        _add_approval(
            db,
            request,
            ctx.person,
            ApprovalAction.AUTO_APPROVE,
            ApprovalLevel.AUTO,
            "Aprovação automática (criação privilegiada)",
        )
        if request.absence_type == AbsenceType.MEDICAL_LEAVE:
            await capacity.open_alert(db, request)
    return request


async def create_request(
    db: AsyncSession,
    ctx: ActingContext,
    data: RequestCreate,
    submit: bool = True,
    today: date | None = None,
) -> AbsenceRequest:
    requester = await get_person_or_404(db, data.requester_id or ctx.person_id)
    if not ctx.may_act_for(requester):
        raise AuthorizationError("Você não pode criar solicitações para esta pessoa")
    if not requester.is_active:
        raise ValidationError("Colaborador inativo")

    end_date = data.end_date
    if data.absence_type == AbsenceType.DAY_OFF and data.start_date and end_date is None:
        end_date = data.start_date

    request = AbsenceRequest(
        requester_id=requester.id,
        absence_type=data.absence_type.value,
        start_date=data.start_date,
        end_date=end_date,
        justification=data.justification,
        status=S.DRAFT.value,
        sellback_days=data.sellback_days or 0,
        expected_delivery_date=data.expected_delivery_date,
        contract_exception_justification=data.contract_exception_justification,
        affects_team_capacity=data.affects_team_capacity,
    )
    await persist_request(db, request)
    if submit:
        await _submit(db, ctx, request, today)
    await commit(db)
    logger.info(
        "Request %d (%s) created by %d for %d: %s",
        request.id, request.absence_type, ctx.person_id, requester.id, request.status,
    )
    return await fetch_request(db, request.id)


async def update_draft(
    db: AsyncSession,
    ctx: ActingContext,
    request_id: int,
    data: RequestUpdate,
) -> AbsenceRequest:
    request = await fetch_request(db, request_id)
    ensure_can_edit(ctx.person, request)

    changes = data.model_dump(exclude_unset=True)
    if "absence_type" in changes and changes["absence_type"] is not None:
        changes["absence_type"] = AbsenceType(changes["absence_type"]).value
    before = _snapshot(request)
    for field, value in changes.items():
        setattr(request, field, value)
    if request.absence_type == AbsenceType.DAY_OFF and request.start_date is not None:
        request.end_date = request.start_date
    if request.sellback_days is None:
        request.sellback_days = 0
    if request.start_date and request.end_date and request.end_date < request.start_date:
        raise ValidationError("A data de término não pode ser anterior à data de início.")

    audit.record(db, "absence_request", request.id, "update", ctx.person_id, {"before": before, "changes": changes})
    await commit(db)
    return await fetch_request(db, request.id)


async def submit_request(
    db: AsyncSession,
    ctx: ActingContext,
    request_id: int,
    today: date | None = None,
) -> AbsenceRequest:
    request = await fetch_request(db, request_id)
    if request.requester_id != ctx.person_id and not ctx.is_privileged:
        raise AuthorizationError("Apenas o solicitante pode enviar esta solicitação")
    await _submit(db, ctx, request, today)
    await commit(db)
    return await fetch_request(db, request.id)


# ── Review ──────────────────────────────────────────────────────────
async def approve_request(
    db: AsyncSession,
    ctx: ActingContext,
    request_id: int,
    comment: str | None = None,
) -> AbsenceRequest:
    request = await fetch_request(db, request_id)
    level = ensure_can_review(ctx.person, request)

    if level == ApprovalLevel.MANAGER:
        await update_request_status(db, request, S.MANAGER_APPROVED)
        await update_request_status(db, request, S.DIRECTOR_REVIEW)
    else:
        if request.absence_type == AbsenceType.VACATION and request.start_date and request.end_date:
            # Refresh the conflict picture; the board may approve regardless
            requester = await get_person_or_404(db, request.requester_id)
            conflicts = await check_conflicts(
                db, requester, request.start_date, request.end_date, request.id
            )
            refs = sorted({r.id for c in conflicts for r in c.requests})
            request.has_conflict = bool(refs)
            request.conflict_refs = refs or None
        if request.absence_type == AbsenceType.DAY_OFF and request.start_date:
            history = await fetch_requests_for_person(db, request.requester_id, AbsenceType.DAY_OFF)
            if has_used_day_off(history, request.start_date.year, exclude_request_id=request.id):
                raise ValidationError(
                    f"Day-off de {request.start_date.year} já aprovado para este colaborador."
                )
        await update_request_status(db, request, S.FINAL_APPROVED)
        if request.absence_type == AbsenceType.MEDICAL_LEAVE:
            await capacity.open_alert(db, request)

    _add_approval(db, request, ctx.person, ApprovalAction.APPROVE, level, comment)
    await commit(db)
    logger.info("Request %d approved at %s by %d", request.id, level.value, ctx.person_id)
    return await fetch_request(db, request.id)


async def reject_request(
    db: AsyncSession,
    ctx: ActingContext,
    request_id: int,
    comment: str | None,
) -> AbsenceRequest:
    comment = _require_comment(comment, "Informe o motivo da reprovação")
    request = await fetch_request(db, request_id)
    level = ensure_can_review(ctx.person, request)
    await update_request_status(db, request, S.REJECTED)
    _add_approval(db, request, ctx.person, ApprovalAction.REJECT, level, comment)
    await commit(db)
    logger.info("Request %d rejected at %s by %d", request.id, level.value, ctx.person_id)
    return await fetch_request(db, request.id)


async def request_more_info(
    db: AsyncSession,
    ctx: ActingContext,
    request_id: int,
    comment: str | None,
) -> AbsenceRequest:
    comment = _require_comment(comment, "Descreva as informações necessárias")
    request = await fetch_request(db, request_id)
    level = ensure_can_review(ctx.person, request)
    await update_request_status(db, request, S.NEEDS_INFO)
    _add_approval(db, request, ctx.person, ApprovalAction.REQUEST_INFO, level, comment)
    await commit(db)
    return await fetch_request(db, request.id)


async def cancel_request(
    db: AsyncSession,
    ctx: ActingContext,
    request_id: int,
    reason: str | None = None,
) -> AbsenceRequest:
    request = await fetch_request(db, request_id)
    ensure_can_cancel(ctx.person, request)
    previous = request.status
    await update_request_status(db, request, S.CANCELLED)
    await capacity.resolve_alerts(db, request.id)
    audit.record(
        db, "absence_request", request.id, "cancel", ctx.person_id,
        {"previous_status": previous, "reason": reason},
    )
    await commit(db)
    return await fetch_request(db, request.id)


async def end_medical_leave(
    db: AsyncSession,
    ctx: ActingContext,
    request_id: int,
    end_date: date | None = None,
) -> AbsenceRequest:
    """Close an approved medical leave, optionally earlier than planned, and resolve its alerts."""
    request = await fetch_request(db, request_id)
    if request.absence_type != AbsenceType.MEDICAL_LEAVE:
        raise ValidationError("Apenas licenças médicas podem ser encerradas.")
    requester = request.requester
    if not ctx.is_privileged and (requester is None or requester.manager_id != ctx.person_id):
        raise AuthorizationError("Apenas o gestor ou a diretoria podem encerrar a licença")
    ensure_transition(request.status, S.REALIZED)

    previous_end = request.end_date
    if end_date is not None:
        if end_date < request.start_date or (previous_end and end_date > previous_end):
            raise ValidationError(
                "A nova data de término deve estar dentro do período da licença."
            )
        request.end_date = end_date
    await update_request_status(db, request, S.REALIZED)
    resolved = await capacity.resolve_alerts(db, request.id)
    audit.record(
        db, "absence_request", request.id, "end_medical_leave", ctx.person_id,
        {"previous_end_date": previous_end, "end_date": request.end_date},
    )
    await commit(db)
    logger.info("Medical leave %d ended by %d (%d alert(s) resolved)", request.id, ctx.person_id, resolved)
    return await fetch_request(db, request.id)


async def delete_request(
    db: AsyncSession,
    ctx: ActingContext,
    request_id: int,
    justification: str | None = None,
) -> None:
    request = await fetch_request(db, request_id)
    if deletion_requires_justification(ctx.person, request):
        justification = _require_comment(
            justification, "Justificativa é obrigatória para exclusão administrativa"
        )
        audit.record(
            db, "absence_request", request.id, "delete", ctx.person_id,
            {"request": _snapshot(request), "justification": justification},
        )
    await db.execute(delete(Approval).where(Approval.request_id == request.id))
    await capacity.delete_alerts(db, request.id)
    await db.delete(request)
    await commit(db)
    logger.info("Request %d deleted by %d", request_id, ctx.person_id)


# ── Elapsed periods ─────────────────────────────────────────────────
async def mark_elapsed(db: AsyncSession, today: date | None = None) -> int:
    """Advance approved requests whose period started or ended; returns how many moved."""
    today = today or date.today()
    result = await db.execute(
        select(AbsenceRequest).where(
            AbsenceRequest.status.in_([S.FINAL_APPROVED.value, S.IN_PROGRESS.value]),
            AbsenceRequest.start_date.is_not(None),
            AbsenceRequest.start_date <= today,
        )
    )
    moved = 0
    for request in result.unique().scalars().all():
        if request.end_date is not None and request.end_date < today:
            await update_request_status(db, request, S.REALIZED)
            await capacity.resolve_alerts(db, request.id)
            moved += 1
        elif request.status == S.FINAL_APPROVED:
            await update_request_status(db, request, S.IN_PROGRESS)
            moved += 1
    await commit(db)
    if moved:
        logger.info("Advanced %d elapsed request(s)", moved)
    return moved


# ── Historical records ──────────────────────────────────────────────
async def create_historical_request(
    db: AsyncSession,
    ctx: ActingContext,
    data: HistoricalRequestCreate,
) -> AbsenceRequest:
    if not ctx.is_privileged:
        raise AuthorizationError("Apenas diretores ou administradores podem registrar histórico")
    requester = await get_person_or_404(db, data.requester_id)

    if data.end_date < data.start_date:
        raise ValidationError("A data de término não pode ser anterior à data de início.")
    if data.absence_type == AbsenceType.DAY_OFF and data.end_date != data.start_date:
        raise ValidationError("Day-off deve ter data de início e término iguais.")
    if data.sellback_days:
        if data.absence_type != AbsenceType.VACATION:
            raise ValidationError("Abono só pode ser solicitado em férias.")
        days = (data.end_date - data.start_date).days + 1
        sellback = check_sellback(requester.contract_model, data.sellback_days, days)
        if not sellback.valid:
            raise ValidationError(sellback.message)

    request = AbsenceRequest(
        requester_id=requester.id,
        absence_type=data.absence_type.value,
        start_date=data.start_date,
        end_date=data.end_date,
        justification=data.justification,
        status=data.status.value,
        sellback_days=data.sellback_days,
        is_historical=True,
        original_channel=data.original_channel,
        original_created_at=data.original_created_at,
        admin_observations=data.admin_observations,
    )
    await persist_request(db, request)
    _add_approval(
        db, request, ctx.person, ApprovalAction.HISTORICAL, ApprovalLevel.HISTORICAL,
        data.admin_observations,
    )
    audit.record(db, "absence_request", request.id, "historical", ctx.person_id, _snapshot(request))
    await commit(db)
    logger.info("Historical request %d recorded for %d by %d", request.id, requester.id, ctx.person_id)
    return await fetch_request(db, request.id)
