"""Append-only audit trail writer."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def record(
    db: AsyncSession,
    entity: str,
    entity_id: int | None,
    action: str,
    actor_id: int | None,
    payload: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit row in the caller's transaction; it commits (or rolls back) with it."""
    entry = AuditLog(
        entity=entity,
        entity_id=entity_id,
        action=action,
        actor_id=actor_id,
        payload=_jsonable(payload or {}),
    )
    db.add(entry)
    logger.info("Audit %s#%s %s by %s", entity, entity_id, action, actor_id)
    return entry
