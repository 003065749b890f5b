"""
Vacation balance endpoints: per-person reads, roster and summary for the
board, and the audited manual override / restore / recalculate actions.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_acting_context, get_db, require_privileged
from leavedesk.core.exceptions import AuthorizationError, NotFoundError
from leavedesk.models.person import Person
from leavedesk.schemas.balance import (BalanceRead, BalanceSummary, ManualBalanceUpdate,
                                       RecalculateRequest)
from leavedesk.schemas.reports import DeleteResponse
from leavedesk.services import balances as balance_service
from leavedesk.services.repository import get_person_or_404
from leavedesk.services.validation import ActingContext

router = APIRouter(prefix="/balances", tags=["balances"])


@router.get("", response_model=list[BalanceRead])
async def list_balances(
    year: int | None = Query(None, ge=1900, le=2200),
    db: AsyncSession = Depends(get_db),
    _actor: Person = Depends(require_privileged),
) -> list[BalanceRead]:
    balances = await balance_service.get_all_vacation_balances(db, year)
    return [BalanceRead.model_validate(b) for b in balances]


@router.get("/summary", response_model=BalanceSummary)
async def balance_summary(
    year: int | None = Query(None, ge=1900, le=2200),
    db: AsyncSession = Depends(get_db),
    _actor: Person = Depends(require_privileged),
) -> BalanceSummary:
    year = year or date.today().year
    summary = await balance_service.get_vacation_summary(db, year)
    return BalanceSummary(year=year, **summary)


@router.get("/{person_id}", response_model=BalanceRead)
async def get_balance(
    person_id: int,
    year: int | None = Query(None, ge=1900, le=2200),
    db: AsyncSession = Depends(get_db),
    ctx: ActingContext = Depends(get_acting_context),
) -> BalanceRead:
    person = await get_person_or_404(db, person_id)
    if not ctx.may_act_for(person):
        raise AuthorizationError("Você não tem acesso ao saldo desta pessoa")
    balance = await balance_service.get_vacation_balance(db, person_id, year)
    if balance is None:
        raise NotFoundError(
            "Não foi possível calcular o saldo de férias. "
            "Verifique se a data de contrato está cadastrada."
        )
    return BalanceRead.model_validate(balance)


@router.put("/{person_id}/{year}", response_model=BalanceRead)
async def save_manual_balance(
    person_id: int,
    body: ManualBalanceUpdate,
    year: int = Path(ge=1900, le=2200),
    db: AsyncSession = Depends(get_db),
    actor: Person = Depends(require_privileged),
) -> BalanceRead:
    balance = await balance_service.save_manual_balance(
        db, actor, person_id, year, body.accrued_days, body.used_days, body.justification
    )
    return BalanceRead.model_validate(balance)


@router.delete("/{person_id}/{year}", response_model=DeleteResponse)
async def restore_automatic_balance(
    person_id: int,
    year: int = Path(ge=1900, le=2200),
    db: AsyncSession = Depends(get_db),
    actor: Person = Depends(require_privileged),
) -> DeleteResponse:
    await balance_service.restore_automatic_balance(db, actor, person_id, year)
    return DeleteResponse(success=True, message="Saldo automático restaurado")


@router.post("/{person_id}/{year}/recalculate", response_model=BalanceRead)
async def recalculate_balance(
    person_id: int,
    body: RecalculateRequest,
    year: int = Path(ge=1900, le=2200),
    db: AsyncSession = Depends(get_db),
    actor: Person = Depends(require_privileged),
) -> BalanceRead:
    balance = await balance_service.recalculate_and_save(db, actor, person_id, year, body.justification)
    return BalanceRead.model_validate(balance)
