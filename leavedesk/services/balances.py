"""
Vacation balance service.

Reads are hybrid: a manual override row for (person, year) wins, otherwise
the balance is computed on the fly from the contract date and the realized
vacation history. Writes only ever touch override rows and are audited.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.config import settings
from leavedesk.core.exceptions import AuthorizationError, ValidationError
from leavedesk.models.absence_request import AbsenceRequest
from leavedesk.models.person import Person
from leavedesk.models.vacation_balance import VacationBalance
from leavedesk.rules.balance import BalanceSnapshot, compute_balance
from leavedesk.rules.enums import AbsenceType, RequestStatus, is_privileged
from leavedesk.rules.periods import anniversary_in
from leavedesk.services import audit
from leavedesk.services.repository import commit, fetch_requests_for_person, get_person_or_404

logger = logging.getLogger(__name__)


def _snapshot_from_row(row: VacationBalance, person: Person | None = None) -> BalanceSnapshot:
    return BalanceSnapshot(
        year=row.year,
        accrued_days=row.accrued_days,
        used_days=row.used_days,
        balance_days=row.balance_days,
        contract_anniversary=row.contract_anniversary,
        person_id=row.person_id,
        person_name=person.name if person is not None else None,
        is_manual=True,
        justification=row.justification,
        updated_by=row.updated_by,
    )


def _ensure_privileged(actor: Person) -> None:
    if not is_privileged(actor.role, actor.is_admin):
        raise AuthorizationError("Apenas diretores ou administradores podem alterar saldos")


async def _fetch_override(db: AsyncSession, person_id: int, year: int) -> VacationBalance | None:
    result = await db.execute(
        select(VacationBalance).where(
            VacationBalance.person_id == person_id,
            VacationBalance.year == year,
        )
    )
    return result.scalar_one_or_none()


async def _automatic_balance(
    db: AsyncSession, person: Person, year: int, today: date | None = None
) -> BalanceSnapshot | None:
    if person.contract_start is None:
        return None
    requests = await fetch_requests_for_person(db, person.id, AbsenceType.VACATION)
    snapshot = compute_balance(person.contract_start, requests, year, today)
    snapshot.person_id = person.id
    snapshot.person_name = person.name
    return snapshot


# ── Reads ───────────────────────────────────────────────────────────
async def get_vacation_balance(
    db: AsyncSession,
    person_id: int,
    year: int | None = None,
    today: date | None = None,
) -> BalanceSnapshot | None:
    """Manual override if present, else the computed balance; ``None`` without a contract date."""
    year = year or (today or date.today()).year
    person = await get_person_or_404(db, person_id)
    override = await _fetch_override(db, person_id, year)
    if override is not None:
        return _snapshot_from_row(override, person)
    return await _automatic_balance(db, person, year, today)


async def get_all_vacation_balances(
    db: AsyncSession, year: int | None = None, today: date | None = None
) -> list[BalanceSnapshot]:
    year = year or (today or date.today()).year

    people_result = await db.execute(
        select(Person).where(Person.is_active.is_(True)).order_by(Person.name)
    )
    people = list(people_result.unique().scalars().all())

    overrides_result = await db.execute(select(VacationBalance).where(VacationBalance.year == year))
    overrides = {row.person_id: row for row in overrides_result.scalars().all()}

    requests_result = await db.execute(
        select(AbsenceRequest).where(
            AbsenceRequest.absence_type == AbsenceType.VACATION.value,
            AbsenceRequest.status == RequestStatus.REALIZED.value,
        )
    )
    by_person: dict[int, list[AbsenceRequest]] = defaultdict(list)
    for req in requests_result.unique().scalars().all():
        by_person[req.requester_id].append(req)

    balances = []
    for person in people:
        if person.id in overrides:
            balances.append(_snapshot_from_row(overrides[person.id], person))
            continue
        if person.contract_start is None:
            balances.append(
                BalanceSnapshot(
                    year=year,
                    accrued_days=0,
                    used_days=0,
                    balance_days=0,
                    contract_anniversary=None,
                    person_id=person.id,
                    person_name=person.name,
                )
            )
            continue
        snapshot = compute_balance(person.contract_start, by_person[person.id], year, today)
        snapshot.person_id = person.id
        snapshot.person_name = person.name
        balances.append(snapshot)
    return balances


async def get_vacation_summary(
    db: AsyncSession, year: int | None = None, today: date | None = None
) -> dict:
    balances = await get_all_vacation_balances(db, year, today)
    total = len(balances)
    total_balance = sum(b.balance_days for b in balances)
    return {
        "total_people": total,
        "without_contract": sum(1 for b in balances if b.contract_anniversary is None),
        "accumulated_vacations": sum(
            1 for b in balances if b.balance_days > settings.VACATION_DAYS_PER_YEAR
        ),
        "average_balance": round(total_balance / total) if total else 0,
    }


# ── Writes ──────────────────────────────────────────────────────────
async def _store_manual(
    db: AsyncSession,
    actor: Person,
    person: Person,
    year: int,
    accrued_days: int,
    used_days: int,
    justification: str | None,
    action: str,
) -> VacationBalance:
    _ensure_privileged(actor)
    if not justification or not justification.strip():
        raise ValidationError("Justificativa é obrigatória para ajuste manual de saldo")
    if person.contract_start is None:
        raise ValidationError("Pessoa sem data de contrato cadastrada")
    if accrued_days < 0 or used_days < 0:
        raise ValidationError("Dias adquiridos e utilizados não podem ser negativos")

    row = await _fetch_override(db, person.id, year)
    previous = _snapshot_from_row(row) if row is not None else None
    if row is None:
        row = VacationBalance(person_id=person.id, year=year)
        db.add(row)
    row.accrued_days = accrued_days
    row.used_days = used_days
    row.balance_days = max(0, accrued_days - used_days)
    row.contract_anniversary = anniversary_in(person.contract_start, year)
    row.is_manual = True
    row.justification = justification.strip()
    row.updated_by = actor.id

    audit.record(
        db,
        "vacation_balance",
        person.id,
        action,
        actor.id,
        {
            "year": year,
            "accrued_days": accrued_days,
            "used_days": used_days,
            "balance_days": row.balance_days,
            "justification": row.justification,
            "previous_balance": previous.balance_days if previous else None,
        },
    )
    return row


async def save_manual_balance(
    db: AsyncSession,
    actor: Person,
    person_id: int,
    year: int,
    accrued_days: int,
    used_days: int,
    justification: str | None,
) -> BalanceSnapshot:
    person = await get_person_or_404(db, person_id)
    row = await _store_manual(
        db, actor, person, year, accrued_days, used_days, justification, "manual_override"
    )
    await commit(db)
    logger.info("Manual balance for person %d/%d set by %d", person_id, year, actor.id)
    return _snapshot_from_row(row, person)


async def restore_automatic_balance(
    db: AsyncSession,
    actor: Person,
    person_id: int,
    year: int,
    today: date | None = None,
) -> BalanceSnapshot | None:
    _ensure_privileged(actor)
    person = await get_person_or_404(db, person_id)
    await db.execute(
        delete(VacationBalance).where(
            VacationBalance.person_id == person_id,
            VacationBalance.year == year,
        )
    )
    audit.record(db, "vacation_balance", person_id, "restore_automatic", actor.id, {"year": year})
    await commit(db)
    logger.info("Automatic balance restored for person %d/%d by %d", person_id, year, actor.id)
    return await _automatic_balance(db, person, year, today)


async def recalculate_and_save(
    db: AsyncSession,
    actor: Person,
    person_id: int,
    year: int,
    justification: str | None,
    today: date | None = None,
) -> BalanceSnapshot:
    """Freeze the currently computed balance as a manual snapshot."""
    _ensure_privileged(actor)
    person = await get_person_or_404(db, person_id)
    computed = await _automatic_balance(db, person, year, today)
    if computed is None:
        raise ValidationError("Pessoa sem data de contrato cadastrada")
    row = await _store_manual(
        db,
        actor,
        person,
        year,
        computed.accrued_days,
        computed.used_days,
        justification,
        "recalculate",
    )
    await commit(db)
    return _snapshot_from_row(row, person)
