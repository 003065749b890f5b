"""
Type-specific eligibility rules: day-off, maternity leave and sellback (abono).

Every check returns a :class:`RuleResult`; none of them touch the database.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING

from leavedesk.core.config import settings
from leavedesk.core.exceptions import ValidationError
from leavedesk.rules.enums import AbsenceType, ContractModel, RequestStatus, Role
from leavedesk.rules.periods import Period, eligibility_window, format_br

if TYPE_CHECKING:
    from leavedesk.models.absence_request import AbsenceRequest
    from leavedesk.models.person import Person


@dataclass
class RuleResult:
    valid: bool
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> "RuleResult":
        return cls(True, message)

    @classmethod
    def fail(cls, message: str) -> "RuleResult":
        return cls(False, message)


# ── Day-off ─────────────────────────────────────────────────────────
DAY_OFF_CONSUMING_STATUSES = (RequestStatus.FINAL_APPROVED, RequestStatus.REALIZED)
DAY_OFF_IN_REVIEW_STATUSES = (
    RequestStatus.PENDING,
    RequestStatus.MANAGER_REVIEW,
    RequestStatus.MANAGER_APPROVED,
    RequestStatus.DIRECTOR_REVIEW,
    RequestStatus.NEEDS_INFO,
)

MISSING_BIRTH_DATE = (
    "É necessário cadastrar sua data de nascimento no perfil, para poder solicitar um Day-off"
)


def _day_offs_in(
    requests: Iterable[AbsenceRequest],
    year: int,
    statuses: tuple[RequestStatus, ...],
    exclude_request_id: int | None,
) -> bool:
    return any(
        r.absence_type == AbsenceType.DAY_OFF
        and r.status in statuses
        and r.start_date is not None
        and r.start_date.year == year
        and r.id != exclude_request_id
        for r in requests
    )


def has_used_day_off(
    requests: Iterable[AbsenceRequest],
    year: int,
    exclude_request_id: int | None = None,
) -> bool:
    return _day_offs_in(requests, year, DAY_OFF_CONSUMING_STATUSES, exclude_request_id)


def has_day_off_in_review(
    requests: Iterable[AbsenceRequest],
    year: int,
    exclude_request_id: int | None = None,
) -> bool:
    """Another day-off for ``year`` is still walking the approval chain."""
    return _day_offs_in(requests, year, DAY_OFF_IN_REVIEW_STATUSES, exclude_request_id)


@dataclass
class DayOffStatus:
    available: int
    can_request: bool
    message: str
    window: Period | None = None


def day_off_status(
    person: Person,
    requests: Iterable[AbsenceRequest],
    today: date | None = None,
) -> DayOffStatus:
    """Summary shown on the dashboard: how many day-offs are left this year and why."""
    today = today or date.today()
    if person.birth_date is None:
        return DayOffStatus(0, False, MISSING_BIRTH_DATE)

    if has_used_day_off(requests, today.year):
        return DayOffStatus(
            0, False, f"Day-off já utilizado este ano. Próximo reset: 01/01/{today.year + 1}"
        )

    window = eligibility_window(person.birth_date, today.year)
    if today < window.start:
        return DayOffStatus(
            1,
            False,
            f"Day-off disponível a partir de {format_br(window.start)} (início do mês de aniversário)",
            window,
        )
    return DayOffStatus(
        1, True, "1 Day-off disponível até a véspera do seu próximo aniversário", window
    )


def check_day_off(
    person: Person,
    day: date,
    requests: Iterable[AbsenceRequest],
    privileged: bool,
    today: date | None = None,
    exclude_request_id: int | None = None,
) -> RuleResult:
    today = today or date.today()

    if person.birth_date is None:
        if person.role == Role.DIRECTOR:
            return RuleResult.ok("Day-off registrado sem data de nascimento (diretoria)")
        return RuleResult.fail(MISSING_BIRTH_DATE)

    if privileged:
        return RuleResult.ok("Day-off registrado por criação privilegiada")

    if has_used_day_off(requests, day.year, exclude_request_id):
        return RuleResult.fail(
            f"Day-off já utilizado este ano. Próximo reset: 01/01/{day.year + 1}"
        )
    if has_day_off_in_review(requests, day.year, exclude_request_id):
        return RuleResult.fail(f"Já existe um Day-off de {day.year} aguardando aprovação.")

    window = eligibility_window(person.birth_date, today.year)
    if today < window.start:
        return RuleResult.fail(
            f"Day-off disponível a partir de {format_br(window.start)} (início do mês de aniversário)"
        )
    if not window.contains(day):
        return RuleResult.fail(
            f"Day-off deve ser utilizado entre {format_br(window.start)} e {format_br(window.end)}"
        )
    return RuleResult.ok("1 Day-off disponível até a véspera do seu próximo aniversário")


# ── Maternity leave ────────────────────────────────────────────────
@dataclass
class MaternityValidation:
    valid: bool
    message: str = ""
    clt_days: int = 0
    extension_days: int = 0
    total_days: int = 0

    @property
    def requires_exception_justification(self) -> bool:
        return self.extension_days > 0


def maternity_terms(extension_days: int | None) -> MaternityValidation:
    clt_days = settings.MATERNITY_STATUTORY_DAYS
    extension = max(0, extension_days or 0)
    return MaternityValidation(
        valid=True,
        message=f"Licença maternidade de {clt_days + extension} dias",
        clt_days=clt_days,
        extension_days=extension,
        total_days=clt_days + extension,
    )


def check_maternity_start(start: date, expected_delivery: date) -> RuleResult:
    limit = settings.MATERNITY_MAX_DAYS_BEFORE_DELIVERY
    days_before = (expected_delivery - start).days
    if days_before > limit:
        return RuleResult.fail(
            f"Licença maternidade só pode iniciar até {limit} dias antes do parto previsto. "
            f"Você está tentando iniciar {days_before} dias antes."
        )
    if days_before < 0:
        return RuleResult.fail("A data de início não pode ser posterior à data prevista do parto.")
    return RuleResult.ok()


def maternity_end_date(start: date, total_days: int) -> date:
    try:
        return start + timedelta(days=total_days - 1)
    except OverflowError as exc:
        raise ValidationError("Data de início fora do intervalo suportado.") from exc


# ── Sellback (abono) ────────────────────────────────────────────────
@dataclass(frozen=True)
class SellbackPolicy:
    minimum: int = 0
    maximum: int = 0
    allowed: tuple[int, ...] = field(default_factory=tuple)

    def accepts(self, days: int) -> bool:
        if self.allowed:
            return days in self.allowed
        return self.minimum <= days <= self.maximum


def sellback_policy(model: ContractModel | str | None) -> SellbackPolicy:
    cap = settings.SELLBACK_MAX_DAYS
    if model == ContractModel.CONTRACTOR:
        return SellbackPolicy(0, 0)
    if model == ContractModel.CLT_FIXED_SELLBACK:
        return SellbackPolicy(0, cap, allowed=(0, cap))
    # CLT, CLT_ABONO_LIVRE and people without a registered model
    return SellbackPolicy(0, cap)


def check_sellback(model: ContractModel | str | None, sellback_days: int, requested_days: int) -> RuleResult:
    if not sellback_days:
        return RuleResult.ok()

    policy = sellback_policy(model)
    if model == ContractModel.CONTRACTOR:
        return RuleResult.fail("Contratos PJ não permitem abono de férias.")
    if not policy.accepts(sellback_days):
        if policy.allowed:
            options = " ou ".join(str(v) for v in policy.allowed)
            return RuleResult.fail(f"Abono para contrato CLT com abono fixo deve ser {options} dias.")
        return RuleResult.fail(
            f"Abono deve estar entre {policy.minimum} e {policy.maximum} dias."
        )
    if sellback_days > requested_days:
        return RuleResult.fail(
            f"Dias de abono ({sellback_days}) não podem exceder o total de dias solicitados ({requested_days})."
        )
    return RuleResult.ok()
