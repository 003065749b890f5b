"""
Vacation conflict classification.

Candidates are already-overlapping vacation requests of *other* people;
this module only decides which of them collide and why.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from leavedesk.rules.enums import RequestStatus, Role, is_management
from leavedesk.rules.periods import Period, format_br

if TYPE_CHECKING:
    from leavedesk.models.absence_request import AbsenceRequest

# Statuses that make a vacation "occupy" its period
BLOCKING_STATUSES = (
    RequestStatus.FINAL_APPROVED,
    RequestStatus.REALIZED,
    RequestStatus.IN_PROGRESS,
)

# Lighter same-team check used for day-off and legacy requests
TEAM_OVERLAP_STATUSES = (
    RequestStatus.PENDING,
    RequestStatus.MANAGER_REVIEW,
    RequestStatus.MANAGER_APPROVED,
    RequestStatus.DIRECTOR_REVIEW,
    RequestStatus.FINAL_APPROVED,
)


class ConflictType(str, enum.Enum):
    SAME_TEAM = "sub_time"
    MANAGEMENT = "management"


@dataclass
class Conflict:
    type: ConflictType
    message: str
    requests: list[AbsenceRequest] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "type": self.type.value,
            "message": self.message,
            "request_ids": [r.id for r in self.requests],
        }


def request_period(request: AbsenceRequest) -> Period | None:
    if request.start_date is None or request.end_date is None:
        return None
    return Period(request.start_date, request.end_date)


def overlapping(candidates: Iterable[AbsenceRequest], period: Period) -> list[AbsenceRequest]:
    result = []
    for req in candidates:
        other = request_period(req)
        if other is not None and other.overlaps(period):
            result.append(req)
    return result


def detect_conflicts(
    start: date,
    end: date,
    requester_id: int,
    requester_team: str | None,
    requester_role: Role | str | None,
    candidates: Iterable[AbsenceRequest],
) -> list[Conflict]:
    period = Period(start, end)
    active = [
        req
        for req in overlapping(candidates, period)
        if req.requester_id != requester_id and req.status in BLOCKING_STATUSES
    ]
    conflicts: list[Conflict] = []

    if requester_team:
        same_team = [r for r in active if r.requester is not None and r.requester.team == requester_team]
        if same_team:
            conflicts.append(
                Conflict(
                    ConflictType.SAME_TEAM,
                    f"Conflito detectado: {len(same_team)} pessoa(s) do mesmo sub-time "
                    "já possui(em) férias aprovadas neste período.",
                    same_team,
                )
            )

    if is_management(requester_role):
        managers = [r for r in active if r.requester is not None and is_management(r.requester.role)]
        if managers:
            conflicts.append(
                Conflict(
                    ConflictType.MANAGEMENT,
                    f"Conflito detectado: {len(managers)} pessoa(s) com papel de gestão "
                    "já possui(em) férias aprovadas neste período.",
                    managers,
                )
            )

    return conflicts


def describe_overlap(request: AbsenceRequest) -> str:
    name = request.requester.name if request.requester is not None else f"#{request.requester_id}"
    return f"{name} ({format_br(request.start_date)} - {format_br(request.end_date)})"
