"""
AbsenceRequest & Approval models.

A request starts life as a RASCUNHO draft (dates may still be empty) and
walks the status machine in ``rules.workflow``. Every review decision is
appended to ``approvals``; rows are never updated.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (JSON, Boolean, Column, Date, DateTime, ForeignKey, Index,
                        Integer, String, Text)
from sqlalchemy.orm import relationship

from leavedesk.db.base import Base
from leavedesk.rules.enums import RequestStatus


class AbsenceRequest(Base):
    __tablename__ = "absence_requests"
    __table_args__ = (
        Index("ix_request_requester_status", "requester_id", "status"),
        Index("ix_request_period", "start_date", "end_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    requester_id: int = Column(Integer, ForeignKey("people.id"), nullable=False, index=True)  # type: ignore[assignment]
    absence_type: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    # FERIAS | DAYOFF | LICENCA_MATERNIDADE | LICENCA_MEDICA
    start_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    end_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    justification: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(30), nullable=False, default=RequestStatus.DRAFT.value, index=True
    )
    has_conflict: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    conflict_refs: list | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    sellback_days: int = Column(Integer, nullable=False, default=0, server_default="0")  # type: ignore[assignment]
    expected_delivery_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    is_contract_exception: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    contract_exception_justification: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    # LICENCA_MEDICA only: counts against team capacity
    affects_team_capacity: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]

    # Retroactive records entered by the board
    is_historical: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    original_channel: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    original_created_at: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    admin_observations: str | None = Column(Text, nullable=True)  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    requester = relationship("Person", lazy="joined", foreign_keys=[requester_id])


class Approval(Base):
    __tablename__ = "approvals"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    request_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("absence_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    approver_id: int | None = Column(Integer, ForeignKey("people.id"), nullable=True)  # type: ignore[assignment]
    action: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # approve | reject | request_info | auto_approve | historical
    level: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # GESTOR | DIRETOR | AUTO | HISTORICO
    comment: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
