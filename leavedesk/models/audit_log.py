"""
AuditLog model: append-only trail of sensitive mutations.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String

from leavedesk.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_entity", "entity", "entity_id"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    entity: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    # absence_request | vacation_balance | pending_person | person
    entity_id: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    action: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    payload: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    actor_id: int | None = Column(Integer, ForeignKey("people.id"), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
