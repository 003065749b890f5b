"""
TeamCapacityAlert model: raised when an approved medical leave thins a team.

One row per medical leave that counts against team capacity. The alert is
ACTIVE until the leave ends, is cancelled or is deleted.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String

from leavedesk.db.base import Base
from leavedesk.rules.enums import AlertStatus


class TeamCapacityAlert(Base):
    __tablename__ = "team_capacity_alerts"
    __table_args__ = (Index("ix_capacity_team_status", "team", "status"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    team: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    period_start: date = Column(Date, nullable=False)  # type: ignore[assignment]
    period_end: date = Column(Date, nullable=False)  # type: ignore[assignment]
    request_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("absence_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    affected_people_count: int = Column(Integer, nullable=False, default=1)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20), nullable=False, default=AlertStatus.ACTIVE.value
    )  # ACTIVE | RESOLVED
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    resolved_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
