"""
VacationBalance model: manual per-year balance overrides.

Only overrides live here. The automatic balance is derived on read from
the contract date and the realized vacation history, so a missing row
simply means "use the computed value".
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Boolean, Column, Date, DateTime, ForeignKey, Index, Integer,
                        Text, UniqueConstraint)

from leavedesk.db.base import Base


class VacationBalance(Base):
    __tablename__ = "vacation_balances"
    __table_args__ = (
        UniqueConstraint("person_id", "year", name="uq_balance_person_year"),
        Index("ix_balance_person_year", "person_id", "year"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    person_id: int = Column(Integer, ForeignKey("people.id"), nullable=False)  # type: ignore[assignment]
    year: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    accrued_days: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    used_days: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    balance_days: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    contract_anniversary: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    is_manual: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    justification: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    updated_by: int | None = Column(Integer, ForeignKey("people.id"), nullable=True)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
