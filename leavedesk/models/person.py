"""
Person model: identity, organisational role and contract data.

A Person doubles as the login account (``hashed_password`` is optional:
people registered by HR without portal access have none). The
``manager_id`` self-reference forms the approval tree; cycles are
rejected at write time by ``services.people.ensure_manager_tree``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from leavedesk.db.base import Base
from leavedesk.rules.enums import ContractModel, Role


class Person(Base):
    __tablename__ = "people"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str | None = Column(String(128), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=Role.CONTRIBUTOR.value,
        server_default=Role.CONTRIBUTOR.value,
    )  # COLABORADOR | GESTOR | DIRETOR
    is_admin: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    team: str | None = Column(String(100), nullable=True, index=True)  # type: ignore[assignment]
    job_title: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    location: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    manager_id: int | None = Column(Integer, ForeignKey("people.id"), nullable=True)  # type: ignore[assignment]
    contract_start: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    contract_model: str | None = Column(  # type: ignore[assignment]
        String(20), nullable=True, default=ContractModel.CLT.value
    )  # CLT | CLT_ABONO_LIVRE | CLT_ABONO_FIXO | PJ
    birth_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    maternity_extension_days: int = Column(Integer, nullable=False, default=0, server_default="0")  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    manager = relationship("Person", remote_side=[id], lazy="joined", join_depth=1)
