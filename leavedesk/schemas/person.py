"""Pydantic schemas for people, self-service profile and pending registrations."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, field_validator

from leavedesk.rules.enums import ContractModel, Role
from leavedesk.schemas.request import coerce_date


def _normalise_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v:
        raise ValueError("E-mail inválido")
    return v


class _PersonFields(BaseModel):
    job_title: str | None = None
    location: str | None = None
    team: str | None = None
    manager_id: int | None = None
    contract_start: date | None = None
    contract_model: ContractModel | None = None
    birth_date: date | None = None

    @field_validator("contract_start", "birth_date", mode="before")
    @classmethod
    def _parse_dates(cls, v: Any) -> date | None:
        return coerce_date(v)


class PersonCreate(_PersonFields):
    name: str
    email: str
    password: str | None = None
    role: Role = Role.CONTRIBUTOR
    is_admin: bool = False
    maternity_extension_days: int = 0

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalise_email(v)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Nome é obrigatório")
        return v


class PersonUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: Role | None = None
    is_admin: bool | None = None
    is_active: bool | None = None
    job_title: str | None = None
    location: str | None = None
    team: str | None = None
    manager_id: int | None = None
    contract_start: date | None = None
    contract_model: ContractModel | None = None
    birth_date: date | None = None
    maternity_extension_days: int | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return _normalise_email(v) if v is not None else v

    @field_validator("contract_start", "birth_date", mode="before")
    @classmethod
    def _parse_dates(cls, v: Any) -> date | None:
        return coerce_date(v)


class ProfileUpdate(BaseModel):
    birth_date: date | None = None
    contract_start: date | None = None
    contract_model: ContractModel | None = None

    @field_validator("contract_start", "birth_date", mode="before")
    @classmethod
    def _parse_dates(cls, v: Any) -> date | None:
        return coerce_date(v)


class PersonRead(BaseModel):
    id: int
    name: str
    email: str
    role: str
    is_admin: bool | None
    is_active: bool | None
    team: str | None
    job_title: str | None
    location: str | None
    manager_id: int | None
    contract_start: date | None
    contract_model: str | None
    birth_date: date | None
    maternity_extension_days: int | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class DayOffStatusRead(BaseModel):
    available: int
    can_request: bool
    message: str
    window_start: date | None = None
    window_end: date | None = None


# ── Pending registrations ──────────────────────────────────────────
class PendingPersonCreate(_PersonFields):
    name: str
    email: str
    role: Role = Role.CONTRIBUTOR

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalise_email(v)


class PendingPersonRead(BaseModel):
    id: int
    name: str
    email: str
    job_title: str | None
    location: str | None
    team: str | None
    role: str
    manager_id: int | None
    contract_start: date | None
    birth_date: date | None
    contract_model: str | None
    status: str
    created_by: int | None
    reviewed_by: int | None
    reviewed_at: datetime | None
    rejection_reason: str | None
    director_notes: str | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class PendingOverrides(_PersonFields):
    name: str | None = None
    email: str | None = None
    role: Role | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return _normalise_email(v) if v is not None else v


class PendingApproval(BaseModel):
    overrides: PendingOverrides | None = None
    notes: str | None = None


class PendingRejection(BaseModel):
    reason: str | None = None


class ProcedureResult(BaseModel):
    success: bool
    message: str
    person_id: int | None = None
