"""
Server-side procedures with a fixed remote contract.

``validate_maternity_leave`` is what the request form calls before it
shows the computed end date; the orchestrator calls it as well so both
sides always agree on the entitlement.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.rules.eligibility import MaternityValidation, maternity_terms
from leavedesk.services.repository import fetch_person

logger = logging.getLogger(__name__)


async def validate_maternity_leave(
    db: AsyncSession, person_id: int, start_date: date | None
) -> MaternityValidation:
    person = await fetch_person(db, person_id)
    if person is None or not person.is_active:
        logger.info("Maternity validation for unknown/inactive person %s", person_id)
        return MaternityValidation(valid=False, message="Colaborador não encontrado ou inativo")
    if start_date is None:
        return MaternityValidation(valid=False, message="Data de início é obrigatória")
    return maternity_terms(person.maternity_extension_days)
