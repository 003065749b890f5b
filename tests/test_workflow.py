"""Tests for the request state machine and approval routing."""

from types import SimpleNamespace

import pytest

from leavedesk.core.exceptions import AuthorizationError, StatusTransitionError
from leavedesk.rules.enums import ApprovalLevel, RequestStatus, Role
from leavedesk.rules.workflow import (can_transition, deletion_requires_justification, ensure_can_cancel,
                                      ensure_can_edit, ensure_can_review, ensure_transition, is_terminal,
                                      review_stage_after_pending, submission_path)

S = RequestStatus


def _actor(person_id, role=Role.CONTRIBUTOR, is_admin=False, manager_id=None):
    return SimpleNamespace(id=person_id, role=role, is_admin=is_admin, manager_id=manager_id)


def _request(status, requester):
    return SimpleNamespace(status=status, requester_id=requester.id, requester=requester)


def test_happy_path_transitions():
    path = [S.DRAFT, S.PENDING, S.MANAGER_REVIEW, S.MANAGER_APPROVED, S.DIRECTOR_REVIEW,
            S.FINAL_APPROVED, S.IN_PROGRESS, S.REALIZED]
    for current, target in zip(path, path[1:]):
        assert can_transition(current, target)


def test_terminal_statuses_have_no_exits():
    for status in (S.REALIZED, S.REJECTED, S.CANCELLED):
        assert is_terminal(status)
        with pytest.raises(StatusTransitionError):
            ensure_transition(status, S.PENDING)


def test_invalid_jump_is_rejected():
    with pytest.raises(StatusTransitionError):
        ensure_transition(S.DRAFT, S.FINAL_APPROVED)


def test_raw_codes_are_accepted():
    assert ensure_transition("EM_ANALISE_GESTOR", "INFORMACOES_ADICIONAIS") == S.NEEDS_INFO


def test_direct_report_of_director_skips_manager_stage():
    director = _actor(1, role=Role.DIRECTOR)
    manager = _actor(2, role=Role.MANAGER)
    assert review_stage_after_pending(director) == S.DIRECTOR_REVIEW
    assert review_stage_after_pending(None) == S.DIRECTOR_REVIEW
    assert review_stage_after_pending(manager) == S.MANAGER_REVIEW


def test_privileged_submission_is_final():
    assert submission_path(None, privileged=True) == [S.PENDING, S.FINAL_APPROVED]
    assert submission_path(_actor(2, role=Role.MANAGER), privileged=False) == [S.PENDING, S.MANAGER_REVIEW]


def test_manager_reviews_own_report():
    manager = _actor(2, role=Role.MANAGER)
    requester = _actor(3, manager_id=2)
    assert ensure_can_review(manager, _request(S.MANAGER_REVIEW, requester)) == ApprovalLevel.MANAGER


def test_other_manager_cannot_review():
    stranger = _actor(9, role=Role.MANAGER)
    requester = _actor(3, manager_id=2)
    with pytest.raises(AuthorizationError):
        ensure_can_review(stranger, _request(S.MANAGER_REVIEW, requester))


def test_only_privileged_review_director_stage():
    manager = _actor(2, role=Role.MANAGER)
    director = _actor(1, role=Role.DIRECTOR)
    requester = _actor(3, manager_id=2)
    request = _request(S.DIRECTOR_REVIEW, requester)
    with pytest.raises(AuthorizationError):
        ensure_can_review(manager, request)
    assert ensure_can_review(director, request) == ApprovalLevel.DIRECTOR


def test_cannot_review_own_request():
    manager = _actor(2, role=Role.MANAGER, manager_id=2)
    with pytest.raises(AuthorizationError):
        ensure_can_review(manager, _request(S.MANAGER_REVIEW, manager))


def test_review_outside_review_status():
    director = _actor(1, role=Role.DIRECTOR)
    with pytest.raises(StatusTransitionError):
        ensure_can_review(director, _request(S.DRAFT, _actor(3)))


def test_edit_rules():
    owner = _actor(3)
    ensure_can_edit(owner, _request(S.DRAFT, owner))
    ensure_can_edit(owner, _request(S.NEEDS_INFO, owner))
    with pytest.raises(StatusTransitionError):
        ensure_can_edit(owner, _request(S.PENDING, owner))
    with pytest.raises(AuthorizationError):
        ensure_can_edit(_actor(4), _request(S.DRAFT, owner))


def test_cancel_rules():
    owner = _actor(3)
    ensure_can_cancel(owner, _request(S.FINAL_APPROVED, owner))
    ensure_can_cancel(_actor(1, is_admin=True), _request(S.DIRECTOR_REVIEW, owner))
    with pytest.raises(AuthorizationError):
        ensure_can_cancel(_actor(4), _request(S.PENDING, owner))
    with pytest.raises(StatusTransitionError):
        ensure_can_cancel(owner, _request(S.REALIZED, owner))


def test_deletion_justification_rules():
    owner = _actor(3, manager_id=2)
    manager = _actor(2, role=Role.MANAGER)
    assert deletion_requires_justification(owner, _request(S.DRAFT, owner)) is False
    assert deletion_requires_justification(manager, _request(S.PENDING, owner)) is True
    assert deletion_requires_justification(_actor(1, role=Role.DIRECTOR), _request(S.DRAFT, owner)) is True
    with pytest.raises(AuthorizationError):
        deletion_requires_justification(_actor(5), _request(S.DRAFT, owner))
    with pytest.raises(AuthorizationError):
        deletion_requires_justification(owner, _request(S.PENDING, owner))
