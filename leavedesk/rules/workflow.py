"""
Absence-request state machine and approval routing.

    RASCUNHO -> PENDENTE -> EM_ANALISE_GESTOR -> APROVADO_1NIVEL -> EM_ANALISE_DIRETOR
             -> APROVADO_FINAL -> EM_ANDAMENTO -> REALIZADO

with side exits to REPROVADO / CANCELADO and an INFORMACOES_ADICIONAIS
branch that returns to PENDENTE. Requesters whose direct manager is a
director skip the manager stage. Requests created by directors or admins
go straight to APROVADO_FINAL.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from leavedesk.core.exceptions import AuthorizationError, StatusTransitionError
from leavedesk.rules.enums import ApprovalLevel, RequestStatus, Role, is_privileged

if TYPE_CHECKING:
    from leavedesk.models.absence_request import AbsenceRequest
    from leavedesk.models.person import Person

S = RequestStatus

TRANSITIONS: dict[RequestStatus, tuple[RequestStatus, ...]] = {
    S.DRAFT: (S.DRAFT, S.PENDING, S.CANCELLED),
    S.PENDING: (S.MANAGER_REVIEW, S.DIRECTOR_REVIEW, S.FINAL_APPROVED, S.REJECTED, S.CANCELLED),
    S.MANAGER_REVIEW: (S.MANAGER_APPROVED, S.NEEDS_INFO, S.REJECTED, S.CANCELLED),
    S.MANAGER_APPROVED: (S.DIRECTOR_REVIEW, S.CANCELLED),
    S.DIRECTOR_REVIEW: (S.FINAL_APPROVED, S.NEEDS_INFO, S.REJECTED, S.CANCELLED),
    S.NEEDS_INFO: (S.PENDING, S.CANCELLED),
    S.FINAL_APPROVED: (S.IN_PROGRESS, S.REALIZED, S.CANCELLED),
    S.IN_PROGRESS: (S.REALIZED,),
    S.REALIZED: (),
    S.REJECTED: (),
    S.CANCELLED: (),
}

TERMINAL_STATUSES = tuple(s for s, targets in TRANSITIONS.items() if not targets)
REVIEW_STATUSES = (S.MANAGER_REVIEW, S.DIRECTOR_REVIEW)
EDITABLE_STATUSES = (S.DRAFT, S.NEEDS_INFO)


def can_transition(current: RequestStatus | str, target: RequestStatus | str) -> bool:
    return RequestStatus(target) in TRANSITIONS[RequestStatus(current)]


def ensure_transition(current: RequestStatus | str, target: RequestStatus | str) -> RequestStatus:
    if not can_transition(current, target):
        raise StatusTransitionError(
            f"Transição de status inválida: {RequestStatus(current).value} -> {RequestStatus(target).value}"
        )
    return RequestStatus(target)


def is_terminal(status: RequestStatus | str) -> bool:
    return RequestStatus(status) in TERMINAL_STATUSES


def review_stage_after_pending(manager: Person | None) -> RequestStatus:
    """People reporting directly to a director (or to nobody) skip the manager stage."""
    if manager is None or manager.role == Role.DIRECTOR:
        return S.DIRECTOR_REVIEW
    return S.MANAGER_REVIEW


def submission_path(manager: Person | None, privileged: bool) -> list[RequestStatus]:
    """Statuses a freshly submitted request walks through, in order."""
    if privileged:
        return [S.PENDING, S.FINAL_APPROVED]
    return [S.PENDING, review_stage_after_pending(manager)]


# ── Authorization ───────────────────────────────────────────────────
def _privileged(actor: Person) -> bool:
    return is_privileged(actor.role, actor.is_admin)


def ensure_can_review(actor: Person, request: AbsenceRequest) -> ApprovalLevel:
    """Return the approval level *actor* acts at, or raise if they may not review."""
    status = RequestStatus(request.status)
    if status not in REVIEW_STATUSES:
        raise StatusTransitionError(
            f"Solicitação não está em análise (status atual: {status.value})"
        )
    if actor.id == request.requester_id and not _privileged(actor):
        raise AuthorizationError("Você não pode aprovar sua própria solicitação")

    if status == S.MANAGER_REVIEW:
        requester = request.requester
        if _privileged(actor) or (requester is not None and requester.manager_id == actor.id):
            return ApprovalLevel.MANAGER
        raise AuthorizationError("Apenas o gestor direto pode analisar esta solicitação")

    if _privileged(actor):
        return ApprovalLevel.DIRECTOR
    raise AuthorizationError("Apenas diretores ou administradores podem analisar esta etapa")


def ensure_can_edit(actor: Person, request: AbsenceRequest) -> None:
    if actor.id != request.requester_id:
        raise AuthorizationError("Apenas o solicitante pode editar esta solicitação")
    if RequestStatus(request.status) not in EDITABLE_STATUSES:
        raise StatusTransitionError("Apenas rascunhos ou pedidos de informação podem ser editados")


def ensure_can_cancel(actor: Person, request: AbsenceRequest) -> None:
    if actor.id != request.requester_id and not _privileged(actor):
        raise AuthorizationError("Apenas o solicitante ou a diretoria podem cancelar")
    if is_terminal(request.status):
        raise StatusTransitionError("Solicitação já finalizada não pode ser cancelada")


def deletion_requires_justification(actor: Person, request: AbsenceRequest) -> bool:
    """Owner deleting a draft: no. Administrative deletion: yes. Anyone else: forbidden."""
    if actor.id == request.requester_id and RequestStatus(request.status) == S.DRAFT:
        return False
    requester = request.requester
    is_manager = requester is not None and requester.manager_id == actor.id
    if _privileged(actor) or is_manager:
        return True
    raise AuthorizationError("Você não tem permissão para excluir esta solicitação")
