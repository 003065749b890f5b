"""
Vacation balance calculator.

Accrual is anchored to the contract anniversary: every completed year of
tenure grants ``VACATION_DAYS_PER_YEAR`` days. Only *realized* vacation
requests are deducted, historical ones included.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from leavedesk.core.config import settings
from leavedesk.rules.enums import AbsenceType, RequestStatus
from leavedesk.rules.periods import anniversary_in, days_inclusive

if TYPE_CHECKING:
    from leavedesk.models.absence_request import AbsenceRequest


@dataclass
class BalanceSnapshot:
    year: int
    accrued_days: int
    used_days: int
    balance_days: int
    contract_anniversary: date | None
    person_id: int | None = None
    person_name: str | None = None
    is_manual: bool = False
    justification: str | None = None
    updated_by: int | None = None


def completed_tenure_years(contract_start: date, target_year: int, today: date | None = None) -> int:
    today = today or date.today()
    years = target_year - contract_start.year
    if target_year == today.year and today < anniversary_in(contract_start, target_year):
        years -= 1
    return max(0, years)


def used_vacation_days(requests: Iterable[AbsenceRequest]) -> int:
    return sum(
        days_inclusive(r.start_date, r.end_date)
        for r in requests
        if r.absence_type == AbsenceType.VACATION and r.status == RequestStatus.REALIZED
    )


def compute_balance(
    contract_start: date,
    requests: Iterable[AbsenceRequest],
    target_year: int,
    today: date | None = None,
) -> BalanceSnapshot:
    accrued = max(0, completed_tenure_years(contract_start, target_year, today) * settings.VACATION_DAYS_PER_YEAR)
    used = used_vacation_days(requests)
    return BalanceSnapshot(
        year=target_year,
        accrued_days=accrued,
        used_days=used,
        balance_days=max(0, accrued - used),
        contract_anniversary=anniversary_in(contract_start, target_year),
    )
