"""Pydantic schemas for reports, health and status endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


class ActiveAbsence(BaseModel):
    request_id: int
    person_id: int
    person_name: str
    team: str | None
    absence_type: str
    status: str
    start_date: date
    end_date: date
    days_remaining: int


class ActiveAbsencesResponse(BaseModel):
    on: date
    total: int
    by_type: dict[str, int]
    absences: list[ActiveAbsence]


class CapacityAlertRead(BaseModel):
    id: int
    team: str
    period_start: date
    period_end: date
    request_id: int
    affected_people_count: int
    status: str
    created_at: datetime | None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    db: bool


class StatusResponse(BaseModel):
    total_people: int
    pending_reviews: int
    active_absences: int
    status: str


class DeleteResponse(BaseModel):
    success: bool
    message: str
