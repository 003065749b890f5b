"""
People administration, self-service profile and the pending-registration
workflow.

The manager relation is kept a tree: every write that changes
``manager_id`` walks the chain upwards and refuses assignments that would
loop back to the person being edited.
"""

from __future__ import annotations

import enum
import logging
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.exceptions import AuthorizationError, ValidationError
from leavedesk.core.security import get_password_hash
from leavedesk.models.pending_person import PendingPerson
from leavedesk.models.person import Person
from leavedesk.rules.eligibility import DayOffStatus, day_off_status
from leavedesk.rules.enums import (AbsenceType, PendingPersonStatus, Role, is_management,
                                   is_privileged)
from leavedesk.schemas.person import (PendingPersonCreate, PendingOverrides, PersonCreate,
                                      PersonUpdate, ProfileUpdate)
from leavedesk.services import audit
from leavedesk.services.repository import (commit, fetch_person, fetch_person_by_email,
                                           fetch_requests_for_person, get_person_or_404)
from leavedesk.services.validation import ActingContext

logger = logging.getLogger(__name__)

_PERSON_FIELDS = (
    "name",
    "email",
    "job_title",
    "location",
    "team",
    "role",
    "manager_id",
    "contract_start",
    "birth_date",
    "contract_model",
)


def _value(v):
    return v.value if isinstance(v, enum.Enum) else v


def _ensure_privileged(actor: Person) -> None:
    if not is_privileged(actor.role, actor.is_admin):
        raise AuthorizationError("Apenas diretores ou administradores podem gerenciar pessoas")


def _ensure_director_rules(actor: Person, target: Person | None, new_role: Role | str | None) -> None:
    """Only directors may edit a director or hand out the director role."""
    if actor.role == Role.DIRECTOR:
        return
    if target is not None and target.role == Role.DIRECTOR:
        raise AuthorizationError("Apenas diretores podem editar diretores")
    if new_role == Role.DIRECTOR:
        raise AuthorizationError("Apenas diretores podem promover alguém a diretor")


# ── Manager tree ────────────────────────────────────────────────────
async def ensure_manager_tree(db: AsyncSession, person_id: int | None, manager_id: int | None) -> None:
    if manager_id is None:
        return
    if person_id is not None and manager_id == person_id:
        raise ValidationError("Uma pessoa não pode ser gestora de si mesma")

    manager = await fetch_person(db, manager_id)
    if manager is None:
        raise ValidationError("Gestor informado não existe")
    if person_id is None:
        return

    seen: set[int] = set()
    current: int | None = manager_id
    while current is not None and current not in seen:
        if current == person_id:
            raise ValidationError("Esta atribuição de gestor criaria um ciclo na hierarquia")
        seen.add(current)
        current = await db.scalar(select(Person.manager_id).where(Person.id == current))


# ── Reads ───────────────────────────────────────────────────────────
async def list_people(
    db: AsyncSession,
    include_inactive: bool = False,
    team: str | None = None,
    skip: int = 0,
    limit: int = 200,
) -> list[Person]:
    query = select(Person)
    if not include_inactive:
        query = query.where(Person.is_active.is_(True))
    if team:
        query = query.where(Person.team == team)
    result = await db.execute(query.order_by(Person.name).offset(skip).limit(limit))
    return list(result.unique().scalars().all())


async def get_day_off_status(
    db: AsyncSession,
    ctx: ActingContext,
    person_id: int,
    today: date | None = None,
) -> DayOffStatus:
    person = await get_person_or_404(db, person_id)
    if not ctx.may_act_for(person):
        raise AuthorizationError("Você não tem acesso aos dados desta pessoa")
    history = await fetch_requests_for_person(db, person.id, AbsenceType.DAY_OFF)
    return day_off_status(person, history, today)


# ── Admin CRUD ──────────────────────────────────────────────────────
async def create_person(db: AsyncSession, actor: Person, data: PersonCreate) -> Person:
    _ensure_privileged(actor)
    _ensure_director_rules(actor, None, data.role)
    if await fetch_person_by_email(db, data.email) is not None:
        raise ValidationError("Já existe uma pessoa com este e-mail")
    await ensure_manager_tree(db, None, data.manager_id)

    person = Person(
        name=data.name,
        email=data.email,
        hashed_password=get_password_hash(data.password) if data.password else None,
        role=data.role.value,
        is_admin=data.is_admin,
        team=data.team,
        job_title=data.job_title,
        location=data.location,
        manager_id=data.manager_id,
        contract_start=data.contract_start,
        contract_model=data.contract_model.value if data.contract_model else None,
        birth_date=data.birth_date,
        maternity_extension_days=max(0, data.maternity_extension_days),
    )
    db.add(person)
    await db.flush()
    audit.record(db, "person", person.id, "create", actor.id, {"email": person.email, "role": person.role})
    await commit(db)
    logger.info("Created person %s (%s)", person.name, person.email)
    return await get_person_or_404(db, person.id)


async def update_person(db: AsyncSession, actor: Person, person_id: int, data: PersonUpdate) -> Person:
    _ensure_privileged(actor)
    person = await get_person_or_404(db, person_id)
    changes = data.model_dump(exclude_unset=True)
    _ensure_director_rules(actor, person, changes.get("role"))

    if "email" in changes and changes["email"] and changes["email"] != person.email:
        if await fetch_person_by_email(db, changes["email"]) is not None:
            raise ValidationError("Já existe uma pessoa com este e-mail")
    if "manager_id" in changes:
        await ensure_manager_tree(db, person.id, changes["manager_id"])

    password = changes.pop("password", None)
    if password:
        person.hashed_password = get_password_hash(password)
    for field, value in changes.items():
        setattr(person, field, _value(value))

    audit.record(
        db, "person", person.id, "update", actor.id,
        {k: _value(v) for k, v in changes.items()},
    )
    await commit(db)
    logger.info("Updated person %d", person_id)
    return await get_person_or_404(db, person.id)


async def deactivate_person(db: AsyncSession, actor: Person, person_id: int) -> Person:
    _ensure_privileged(actor)
    if actor.id == person_id:
        raise ValidationError("Você não pode desativar a si mesmo")
    person = await get_person_or_404(db, person_id)
    _ensure_director_rules(actor, person, None)
    person.is_active = False
    audit.record(db, "person", person.id, "deactivate", actor.id)
    await commit(db)
    logger.info("Soft-deleted person %d (%s)", person_id, person.name)
    return person


async def update_profile(
    db: AsyncSession, person: Person, data: ProfileUpdate, today: date | None = None
) -> Person:
    """Self-service: the first-login setup of birth date and contract data."""
    today = today or date.today()
    changes = data.model_dump(exclude_unset=True)
    if changes.get("birth_date") and changes["birth_date"] >= today:
        raise ValidationError("Data de nascimento deve estar no passado")
    if changes.get("contract_start") and changes["contract_start"] > today:
        raise ValidationError("Data de contrato não pode estar no futuro")

    target = await get_person_or_404(db, person.id)
    for field, value in changes.items():
        setattr(target, field, _value(value))
    await commit(db)
    logger.info("Profile updated for person %d", person.id)
    return target


# ── Pending registrations ──────────────────────────────────────────
async def create_pending_person(db: AsyncSession, actor: Person, data: PendingPersonCreate) -> PendingPerson:
    if not (is_management(actor.role) or actor.is_admin):
        raise AuthorizationError("Apenas gestores podem cadastrar novos colaboradores")
    if await fetch_person_by_email(db, data.email) is not None:
        raise ValidationError("Já existe uma pessoa com este e-mail")
    duplicate = await db.scalar(
        select(PendingPerson.id).where(
            PendingPerson.email == data.email,
            PendingPerson.status == PendingPersonStatus.PENDING.value,
        )
    )
    if duplicate is not None:
        raise ValidationError("Já existe um cadastro pendente para este e-mail")

    pending = PendingPerson(
        name=data.name.strip(),
        email=data.email,
        job_title=data.job_title,
        location=data.location,
        team=data.team,
        role=data.role.value,
        manager_id=data.manager_id or actor.id,
        contract_start=data.contract_start,
        birth_date=data.birth_date,
        contract_model=data.contract_model.value if data.contract_model else None,
        created_by=actor.id,
    )
    db.add(pending)
    await commit(db)
    logger.info("Pending registration %d submitted by %d", pending.id, actor.id)
    return pending


async def list_pending_people(
    db: AsyncSession, actor: Person, status: PendingPersonStatus | None = None
) -> list[PendingPerson]:
    query = select(PendingPerson)
    if not is_privileged(actor.role, actor.is_admin):
        query = query.where(PendingPerson.created_by == actor.id)
    if status is not None:
        query = query.where(PendingPerson.status == status.value)
    result = await db.execute(query.order_by(PendingPerson.created_at.desc()))
    return list(result.scalars().all())


async def _fetch_pending(db: AsyncSession, pending_id: int) -> PendingPerson | None:
    result = await db.execute(select(PendingPerson).where(PendingPerson.id == pending_id))
    return result.scalar_one_or_none()


async def approve_pending_person(
    db: AsyncSession,
    actor: Person,
    pending_id: int,
    overrides: PendingOverrides | None = None,
    notes: str | None = None,
) -> dict:
    if not is_privileged(actor.role, actor.is_admin):
        return {"success": False, "message": "Apenas diretores ou administradores podem aprovar cadastros"}
    pending = await _fetch_pending(db, pending_id)
    if pending is None:
        return {"success": False, "message": "Cadastro pendente não encontrado"}
    if pending.status != PendingPersonStatus.PENDING:
        return {"success": False, "message": "Este cadastro já foi processado"}

    values = {field: getattr(pending, field) for field in _PERSON_FIELDS}
    if overrides is not None:
        values.update(
            {k: _value(v) for k, v in overrides.model_dump(exclude_unset=True).items() if v is not None}
        )
    if values["role"] == Role.DIRECTOR and actor.role != Role.DIRECTOR:
        return {"success": False, "message": "Apenas diretores podem cadastrar diretores"}
    if await fetch_person_by_email(db, values["email"]) is not None:
        return {"success": False, "message": "Já existe uma pessoa com este e-mail"}
    try:
        await ensure_manager_tree(db, None, values["manager_id"])
    except ValidationError as exc:
        return {"success": False, "message": exc.message}

    person = Person(**values)
    db.add(person)
    pending.status = PendingPersonStatus.APPROVED.value
    pending.reviewed_by = actor.id
    pending.reviewed_at = datetime.now(timezone.utc)
    pending.director_notes = notes
    await db.flush()
    audit.record(
        db, "pending_person", pending.id, "approve", actor.id,
        {"person_id": person.id, "notes": notes},
    )
    await commit(db)
    logger.info("Pending registration %d approved by %d -> person %d", pending.id, actor.id, person.id)
    return {"success": True, "message": "Colaborador aprovado e cadastrado com sucesso", "person_id": person.id}


async def reject_pending_person(
    db: AsyncSession,
    actor: Person,
    pending_id: int,
    reason: str | None,
) -> dict:
    if not is_privileged(actor.role, actor.is_admin):
        return {"success": False, "message": "Apenas diretores ou administradores podem rejeitar cadastros"}
    if not reason or not reason.strip():
        return {"success": False, "message": "Informe o motivo da rejeição"}
    pending = await _fetch_pending(db, pending_id)
    if pending is None:
        return {"success": False, "message": "Cadastro pendente não encontrado"}
    if pending.status != PendingPersonStatus.PENDING:
        return {"success": False, "message": "Este cadastro já foi processado"}

    pending.status = PendingPersonStatus.REJECTED.value
    pending.rejection_reason = reason.strip()
    pending.reviewed_by = actor.id
    pending.reviewed_at = datetime.now(timezone.utc)
    audit.record(db, "pending_person", pending.id, "reject", actor.id, {"reason": pending.rejection_reason})
    await commit(db)
    logger.info("Pending registration %d rejected by %d", pending.id, actor.id)
    return {"success": True, "message": "Cadastro rejeitado"}
