"""Pydantic schemas for absence requests, validation results and approvals."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, field_validator

from leavedesk.rules.enums import AbsenceType, RequestStatus
from leavedesk.rules.periods import parse_date
from leavedesk.schemas.balance import BalanceRead

_HISTORICAL_STATUSES = (RequestStatus.FINAL_APPROVED, RequestStatus.REALIZED)


def coerce_date(v: Any) -> date | None:
    """Accept ISO or DD/MM/YYYY strings; empty strings mean 'not informed'."""
    if v is None or isinstance(v, date):
        return v
    if isinstance(v, str) and not v.strip():
        return None
    parsed = parse_date(v)
    if parsed is None:
        raise ValueError("Data inválida (use AAAA-MM-DD ou DD/MM/AAAA)")
    return parsed


class _RequestFields(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    justification: str | None = None
    sellback_days: int = 0
    expected_delivery_date: date | None = None
    contract_exception_justification: str | None = None
    affects_team_capacity: bool = True

    @field_validator("start_date", "end_date", "expected_delivery_date", mode="before")
    @classmethod
    def _parse_dates(cls, v: Any) -> date | None:
        return coerce_date(v)


class RequestCreate(_RequestFields):
    absence_type: AbsenceType
    # Managers and the board may file on behalf of someone else
    requester_id: int | None = None


class RequestUpdate(BaseModel):
    absence_type: AbsenceType | None = None
    start_date: date | None = None
    end_date: date | None = None
    justification: str | None = None
    sellback_days: int | None = None
    expected_delivery_date: date | None = None
    contract_exception_justification: str | None = None
    affects_team_capacity: bool | None = None

    @field_validator("start_date", "end_date", "expected_delivery_date", mode="before")
    @classmethod
    def _parse_dates(cls, v: Any) -> date | None:
        return coerce_date(v)


class ValidateRequest(_RequestFields):
    absence_type: AbsenceType
    person_id: int | None = None
    requested_days: int | None = None
    exclude_request_id: int | None = None


class MaternityValidateRequest(BaseModel):
    person_id: int | None = None
    start_date: date

    @field_validator("start_date", mode="before")
    @classmethod
    def _parse_start(cls, v: Any) -> date | None:
        return coerce_date(v)


class HistoricalRequestCreate(BaseModel):
    requester_id: int
    absence_type: AbsenceType
    start_date: date
    end_date: date
    status: RequestStatus = RequestStatus.REALIZED
    sellback_days: int = 0
    justification: str | None = None
    original_channel: str | None = None
    original_created_at: date | None = None
    admin_observations: str | None = None

    @field_validator("start_date", "end_date", "original_created_at", mode="before")
    @classmethod
    def _parse_dates(cls, v: Any) -> date | None:
        return coerce_date(v)

    @field_validator("status")
    @classmethod
    def _final_status_only(cls, v: RequestStatus) -> RequestStatus:
        if v not in _HISTORICAL_STATUSES:
            raise ValueError("Status histórico deve ser APROVADO_FINAL ou REALIZADO")
        return v


class ReviewAction(BaseModel):
    comment: str | None = None


class DeleteRequest(BaseModel):
    justification: str | None = None


class EndMedicalLeave(BaseModel):
    end_date: date | None = None

    @field_validator("end_date", mode="before")
    @classmethod
    def _parse_end(cls, v: Any) -> date | None:
        return coerce_date(v)


class RequesterBrief(BaseModel):
    id: int
    name: str
    team: str | None
    role: str

    model_config = {"from_attributes": True}


class RequestRead(BaseModel):
    id: int
    requester_id: int
    requester: RequesterBrief | None = None
    absence_type: str
    start_date: date | None
    end_date: date | None
    justification: str | None
    status: str
    has_conflict: bool | None
    conflict_refs: list[int] | None
    sellback_days: int
    expected_delivery_date: date | None
    is_contract_exception: bool | None
    contract_exception_justification: str | None
    affects_team_capacity: bool | None = None
    is_historical: bool | None
    original_channel: str | None
    original_created_at: date | None
    admin_observations: str | None
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class ApprovalRead(BaseModel):
    id: int
    request_id: int
    approver_id: int | None
    action: str
    level: str
    comment: str | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class ConflictRead(BaseModel):
    type: str
    message: str
    request_ids: list[int]


class MaternityRead(BaseModel):
    valid: bool
    message: str
    clt_days: int
    extension_days: int
    total_days: int
    requires_exception_justification: bool = False
    end_date: date | None = None


class ValidationResultRead(BaseModel):
    valid: bool
    message: str
    balance: BalanceRead | None = None
    conflicts: list[ConflictRead] = []
    warnings: list[str] = []
    team_overlaps: list[str] = []
    maternity: MaternityRead | None = None
    end_date: date | None = None
    requires_justification: bool = False
