"""
Request validation orchestrator.

``validate_request`` answers "can this request be submitted?" with a single
result carrying a human-readable message and the structured conflict list.
The request form calls it for live feedback; ``services.requests`` calls it
again inside the write transaction, so the client's answer is advisory only.

Checks short-circuit in this order:

  * shape: person active, dates present, end not before start
  * FERIAS: balance, then sellback bounds, then conflicts
  * DAYOFF: day-off eligibility plus same-team overlaps (non-blocking)
  * LICENCA_MATERNIDADE: maternity procedure, start range, extension justification
  * LICENCA_MEDICA: shape, plus same-team medical leaves (non-blocking)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.exceptions import AuthorizationError, ValidationError
from leavedesk.models.person import Person
from leavedesk.rules.balance import BalanceSnapshot
from leavedesk.rules.conflicts import (BLOCKING_STATUSES, TEAM_OVERLAP_STATUSES, Conflict,
                                       describe_overlap, detect_conflicts)
from leavedesk.rules.eligibility import (MaternityValidation, check_day_off,
                                         check_maternity_start, check_sellback,
                                         maternity_end_date)
from leavedesk.rules.enums import AbsenceType, is_privileged as role_is_privileged
from leavedesk.rules.periods import days_inclusive, format_br
from leavedesk.services.balances import get_vacation_balance
from leavedesk.services.capacity import medical_leave_conflicts
from leavedesk.services.procedures import validate_maternity_leave
from leavedesk.services.repository import (fetch_overlapping_requests, fetch_person,
                                           fetch_requests_for_person)

logger = logging.getLogger(__name__)


@dataclass
class ActingContext:
    """The person performing an operation, passed explicitly to every check."""

    person: Person

    @property
    def person_id(self) -> int:
        return self.person.id

    @property
    def is_privileged(self) -> bool:
        return role_is_privileged(self.person.role, self.person.is_admin)

    def may_act_for(self, person: Person) -> bool:
        return (
            person.id == self.person.id
            or self.is_privileged
            or person.manager_id == self.person.id
        )


@dataclass
class ValidationResult:
    valid: bool
    message: str
    balance: BalanceSnapshot | None = None
    conflicts: list[Conflict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    team_overlaps: list[str] = field(default_factory=list)
    maternity: MaternityValidation | None = None
    end_date: date | None = None

    @property
    def requires_justification(self) -> bool:
        return bool(self.team_overlaps)

    def conflict_dicts(self) -> list[dict]:
        return [c.as_dict() for c in self.conflicts]

    def raise_for_failure(self) -> None:
        if not self.valid:
            raise ValidationError(self.message, conflicts=self.conflict_dicts())


def _fail(message: str, **extra) -> ValidationResult:
    logger.info("Request rejected: %s", message)
    return ValidationResult(valid=False, message=message, **extra)


# ── Conflict lookups ────────────────────────────────────────────────
async def check_conflicts(
    db: AsyncSession,
    person: Person,
    start: date,
    end: date,
    exclude_request_id: int | None = None,
) -> list[Conflict]:
    candidates = await fetch_overlapping_requests(
        db,
        AbsenceType.VACATION,
        start,
        end,
        BLOCKING_STATUSES,
        exclude_requester_id=person.id,
        exclude_request_id=exclude_request_id,
    )
    return detect_conflicts(start, end, person.id, person.team, person.role, candidates)


async def find_team_overlaps(
    db: AsyncSession,
    person: Person,
    start: date,
    end: date,
    exclude_request_id: int | None = None,
) -> list[str]:
    """Same-team requests of any type still pending or approved in [start, end]."""
    if not person.team:
        return []
    candidates = await fetch_overlapping_requests(
        db,
        None,
        start,
        end,
        TEAM_OVERLAP_STATUSES,
        exclude_requester_id=person.id,
        exclude_request_id=exclude_request_id,
    )
    return [
        describe_overlap(req)
        for req in candidates
        if req.requester is not None and req.requester.team == person.team
    ]


# ── Type-specific branches ──────────────────────────────────────────
async def _validate_vacation(
    db: AsyncSession,
    person: Person,
    start: date,
    end: date,
    requested_days: int,
    sellback_days: int,
    privileged: bool,
    exclude_request_id: int | None,
    today: date | None,
) -> ValidationResult:
    warnings: list[str] = []

    balance = await get_vacation_balance(db, person.id, today=today)
    if balance is None:
        return _fail(
            "Não foi possível calcular o saldo de férias. "
            "Verifique se a data de contrato está cadastrada."
        )
    if requested_days > balance.balance_days:
        message = (
            f"Saldo insuficiente. Disponível: {balance.balance_days} dias, "
            f"solicitado: {requested_days} dias."
        )
        if not privileged:
            return _fail(message, balance=balance)
        warnings.append(message)

    sellback = check_sellback(person.contract_model, sellback_days, requested_days)
    if not sellback.valid:
        return _fail(sellback.message, balance=balance)

    conflicts = await check_conflicts(db, person, start, end, exclude_request_id)
    if conflicts and not privileged:
        return _fail(
            "Conflitos detectados com outras solicitações.",
            balance=balance,
            conflicts=conflicts,
        )
    warnings.extend(c.message for c in conflicts)

    return ValidationResult(
        valid=True,
        message="Solicitação válida.",
        balance=balance,
        conflicts=conflicts,
        warnings=warnings,
        end_date=end,
    )


async def _validate_day_off(
    db: AsyncSession,
    person: Person,
    day: date,
    privileged: bool,
    exclude_request_id: int | None,
    today: date | None,
) -> ValidationResult:
    history = await fetch_requests_for_person(db, person.id, AbsenceType.DAY_OFF)
    eligibility = check_day_off(
        person, day, history, privileged, today=today, exclude_request_id=exclude_request_id
    )
    if not eligibility.valid:
        return _fail(eligibility.message)

    overlaps = await find_team_overlaps(db, person, day, day, exclude_request_id)
    warnings = []
    if overlaps:
        warnings.append(
            "Há colegas do mesmo time ausentes nesta data. Informe uma justificativa."
        )
    return ValidationResult(
        valid=True,
        message=eligibility.message or "Solicitação válida.",
        warnings=warnings,
        team_overlaps=overlaps,
        end_date=day,
    )


async def _validate_maternity(
    db: AsyncSession,
    person: Person,
    start: date,
    end: date | None,
    expected_delivery_date: date | None,
    contract_exception_justification: str | None,
) -> ValidationResult:
    terms = await validate_maternity_leave(db, person.id, start)
    if not terms.valid:
        return _fail(terms.message, maternity=terms)
    if expected_delivery_date is None:
        return _fail("Informe a data prevista do parto.", maternity=terms)

    start_check = check_maternity_start(start, expected_delivery_date)
    if not start_check.valid:
        return _fail(start_check.message, maternity=terms)

    expected_end = maternity_end_date(start, terms.total_days)
    if end is not None and end != expected_end:
        return _fail(
            f"A licença de {terms.total_days} dias iniciando em {format_br(start)} "
            f"deve terminar em {format_br(expected_end)}.",
            maternity=terms,
        )
    if terms.requires_exception_justification and not (contract_exception_justification or "").strip():
        return _fail(
            "Justificativa da exceção contratual é obrigatória para licença com extensão.",
            maternity=terms,
        )
    return ValidationResult(
        valid=True, message=terms.message, maternity=terms, end_date=expected_end
    )


# ── Orchestrator ────────────────────────────────────────────────────
async def validate_request(
    db: AsyncSession,
    ctx: ActingContext,
    person_id: int,
    absence_type: AbsenceType | str,
    start: date | None,
    end: date | None,
    requested_days: int | None = None,
    sellback_days: int = 0,
    is_privileged: bool | None = None,
    expected_delivery_date: date | None = None,
    contract_exception_justification: str | None = None,
    exclude_request_id: int | None = None,
    today: date | None = None,
) -> ValidationResult:
    absence_type = AbsenceType(absence_type)
    privileged = ctx.is_privileged if is_privileged is None else is_privileged

    person = await fetch_person(db, person_id)
    if person is None or not person.is_active:
        return _fail("Colaborador não encontrado ou inativo")
    if not ctx.may_act_for(person):
        raise AuthorizationError("Você não pode criar solicitações para esta pessoa")

    if start is None:
        return _fail("A data de início é obrigatória.")
    if absence_type == AbsenceType.MATERNITY_LEAVE:
        # End date is derived from the entitlement when omitted
        if end is not None and end < start:
            return _fail("A data de término não pode ser anterior à data de início.")
        return await _validate_maternity(
            db, person, start, end, expected_delivery_date, contract_exception_justification
        )

    if end is None:
        return _fail("A data de término é obrigatória.")
    if end < start:
        return _fail("A data de término não pode ser anterior à data de início.")
    if sellback_days and absence_type != AbsenceType.VACATION:
        return _fail("Abono só pode ser solicitado em férias.")

    if absence_type == AbsenceType.VACATION:
        period_days = days_inclusive(start, end)
        if requested_days is not None and requested_days != period_days:
            return _fail(
                f"Quantidade de dias ({requested_days}) não confere com o período "
                f"de {format_br(start)} a {format_br(end)} ({period_days} dias)."
            )
        return await _validate_vacation(
            db,
            person,
            start,
            end,
            period_days,
            sellback_days or 0,
            privileged,
            exclude_request_id,
            today,
        )

    if absence_type == AbsenceType.DAY_OFF:
        if end != start:
            return _fail("Day-off deve ter data de início e término iguais.")
        return await _validate_day_off(db, person, start, privileged, exclude_request_id, today)

    warnings = []
    if person.team:
        on_leave = await medical_leave_conflicts(db, person.team, start, end, exclude_request_id)
        if on_leave:
            warnings.append(
                f"{len(on_leave)} colega(s) do time {person.team} já em licença médica neste período."
            )
    return ValidationResult(valid=True, message="Solicitação válida.", warnings=warnings, end_date=end)
