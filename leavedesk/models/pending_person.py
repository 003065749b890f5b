"""
PendingPerson model: registrations submitted by managers, awaiting a
director's decision before a real Person row is created.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text

from leavedesk.db.base import Base
from leavedesk.rules.enums import PendingPersonStatus, Role


class PendingPerson(Base):
    __tablename__ = "pending_people"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), nullable=False, index=True)  # type: ignore[assignment]
    job_title: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    location: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    team: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    role: str = Column(String(20), nullable=False, default=Role.CONTRIBUTOR.value)  # type: ignore[assignment]
    manager_id: int | None = Column(Integer, ForeignKey("people.id"), nullable=True)  # type: ignore[assignment]
    contract_start: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    birth_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    contract_model: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20), nullable=False, default=PendingPersonStatus.PENDING.value, index=True
    )  # PENDENTE | APROVADO | REJEITADO
    created_by: int | None = Column(Integer, ForeignKey("people.id"), nullable=True)  # type: ignore[assignment]
    reviewed_by: int | None = Column(Integer, ForeignKey("people.id"), nullable=True)  # type: ignore[assignment]
    reviewed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    rejection_reason: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    director_notes: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
