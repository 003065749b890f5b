"""
Enumerations shared by the rule engine, the ORM models and the API schemas.

Values are the codes stored in the database; names are what the code uses.
"""

from __future__ import annotations

import enum


class Role(str, enum.Enum):
    CONTRIBUTOR = "COLABORADOR"
    MANAGER = "GESTOR"
    DIRECTOR = "DIRETOR"


# Tuple, not a set: enum members hash by name, so raw DB strings would miss.
MANAGEMENT_ROLES = (Role.MANAGER, Role.DIRECTOR)


def is_privileged(role: Role | str | None, is_admin: bool) -> bool:
    """Directors and admins may create requests despite conflicts or eligibility failures."""
    return bool(is_admin) or role == Role.DIRECTOR


def is_management(role: Role | str | None) -> bool:
    return role in MANAGEMENT_ROLES


class ContractModel(str, enum.Enum):
    CLT = "CLT"
    CLT_FREE_SELLBACK = "CLT_ABONO_LIVRE"
    CLT_FIXED_SELLBACK = "CLT_ABONO_FIXO"
    CONTRACTOR = "PJ"


class AbsenceType(str, enum.Enum):
    VACATION = "FERIAS"
    DAY_OFF = "DAYOFF"
    MATERNITY_LEAVE = "LICENCA_MATERNIDADE"
    MEDICAL_LEAVE = "LICENCA_MEDICA"


class RequestStatus(str, enum.Enum):
    DRAFT = "RASCUNHO"
    PENDING = "PENDENTE"
    MANAGER_REVIEW = "EM_ANALISE_GESTOR"
    MANAGER_APPROVED = "APROVADO_1NIVEL"
    DIRECTOR_REVIEW = "EM_ANALISE_DIRETOR"
    FINAL_APPROVED = "APROVADO_FINAL"
    IN_PROGRESS = "EM_ANDAMENTO"
    REALIZED = "REALIZADO"
    REJECTED = "REPROVADO"
    CANCELLED = "CANCELADO"
    NEEDS_INFO = "INFORMACOES_ADICIONAIS"


class ApprovalAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_INFO = "request_info"
    AUTO_APPROVE = "auto_approve"
    HISTORICAL = "historical"


class ApprovalLevel(str, enum.Enum):
    MANAGER = "GESTOR"
    DIRECTOR = "DIRETOR"
    AUTO = "AUTO"
    HISTORICAL = "HISTORICO"


class AlertStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"


class PendingPersonStatus(str, enum.Enum):
    PENDING = "PENDENTE"
    APPROVED = "APROVADO"
    REJECTED = "REJEITADO"
