"""Pydantic schemas for vacation balances."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class BalanceRead(BaseModel):
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

    model_config = {"from_attributes": True}


class ManualBalanceUpdate(BaseModel):
    accrued_days: int = Field(ge=0)
    used_days: int = Field(ge=0)
    justification: str


class RecalculateRequest(BaseModel):
    justification: str


class BalanceSummary(BaseModel):
    year: int
    total_people: int
    without_contract: int
    accumulated_vacations: int
    average_balance: int
