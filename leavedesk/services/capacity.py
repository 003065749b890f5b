"""
Team capacity alerts for medical leave.

An approved medical leave flagged ``affects_team_capacity`` opens an alert
for the requester's team, counting every same-team medical leave active in
the same period. Ending, cancelling or deleting the leave resolves it.
Callers own the transaction: nothing here commits.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.models.absence_request import AbsenceRequest
from leavedesk.models.capacity_alert import TeamCapacityAlert
from leavedesk.models.person import Person
from leavedesk.rules.enums import AbsenceType, AlertStatus, RequestStatus
from leavedesk.services.repository import fetch_person

if TYPE_CHECKING:
    from leavedesk.services.validation import ActingContext

logger = logging.getLogger(__name__)

ACTIVE_LEAVE_STATUSES = (RequestStatus.FINAL_APPROVED.value, RequestStatus.IN_PROGRESS.value)


async def medical_leave_conflicts(
    db: AsyncSession,
    team: str,
    start: date,
    end: date,
    exclude_request_id: int | None = None,
) -> list[AbsenceRequest]:
    """Approved same-team medical leaves counting against capacity in [start, end]."""
    query = (
        select(AbsenceRequest)
        .join(Person, AbsenceRequest.requester_id == Person.id)
        .where(
            AbsenceRequest.absence_type == AbsenceType.MEDICAL_LEAVE.value,
            AbsenceRequest.status.in_(ACTIVE_LEAVE_STATUSES),
            AbsenceRequest.affects_team_capacity.is_(True),
            Person.team == team,
            AbsenceRequest.start_date <= end,
            AbsenceRequest.end_date >= start,
        )
    )
    if exclude_request_id is not None:
        query = query.where(AbsenceRequest.id != exclude_request_id)
    result = await db.execute(query.order_by(AbsenceRequest.start_date))
    return list(result.unique().scalars().all())


async def open_alert(db: AsyncSession, request: AbsenceRequest) -> TeamCapacityAlert | None:
    if (
        request.absence_type != AbsenceType.MEDICAL_LEAVE
        or not request.affects_team_capacity
        or request.start_date is None
        or request.end_date is None
    ):
        return None
    person = await fetch_person(db, request.requester_id)
    if person is None or not person.team:
        return None

    others = await medical_leave_conflicts(
        db, person.team, request.start_date, request.end_date, request.id
    )
    alert = TeamCapacityAlert(
        team=person.team,
        period_start=request.start_date,
        period_end=request.end_date,
        request_id=request.id,
        affected_people_count=len(others) + 1,
        status=AlertStatus.ACTIVE.value,
    )
    db.add(alert)
    await db.flush()
    logger.info(
        "Capacity alert %d for team %s: %d on medical leave",
        alert.id, alert.team, alert.affected_people_count,
    )
    return alert


async def resolve_alerts(db: AsyncSession, request_id: int) -> int:
    result = await db.execute(
        update(TeamCapacityAlert)
        .where(
            TeamCapacityAlert.request_id == request_id,
            TeamCapacityAlert.status == AlertStatus.ACTIVE.value,
        )
        .values(status=AlertStatus.RESOLVED.value, resolved_at=datetime.now(timezone.utc))
    )
    return result.rowcount or 0


async def delete_alerts(db: AsyncSession, request_id: int) -> None:
    await db.execute(delete(TeamCapacityAlert).where(TeamCapacityAlert.request_id == request_id))


async def list_alerts(
    db: AsyncSession,
    ctx: ActingContext,
    team: str | None = None,
    today: date | None = None,
) -> list[TeamCapacityAlert]:
    """Active alerts whose period has not ended. Outside the board only one's own team."""
    today = today or date.today()
    if not ctx.is_privileged:
        if not ctx.person.team:
            return []
        team = ctx.person.team
    query = select(TeamCapacityAlert).where(
        TeamCapacityAlert.status == AlertStatus.ACTIVE.value,
        TeamCapacityAlert.period_end >= today,
    )
    if team:
        query = query.where(TeamCapacityAlert.team == team)
    query = query.order_by(TeamCapacityAlert.created_at.desc(), TeamCapacityAlert.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())
