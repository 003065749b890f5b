"""Tests for vacation conflict classification."""

from datetime import date
from types import SimpleNamespace

from leavedesk.rules.conflicts import ConflictType, describe_overlap, detect_conflicts
from leavedesk.rules.enums import RequestStatus, Role


def _vacation(request_id, requester_id, team, start, end, role=Role.CONTRIBUTOR,
              status=RequestStatus.FINAL_APPROVED, name="Bruno"):
    requester = SimpleNamespace(id=requester_id, team=team, role=role, name=name)
    return SimpleNamespace(
        id=request_id,
        requester_id=requester_id,
        requester=requester,
        start_date=start,
        end_date=end,
        status=status,
    )


def test_same_team_overlap_is_reported():
    """A's vacation overlaps B's approved one in the same team."""
    b = _vacation(10, 2, "Plataforma", date(2024, 7, 5), date(2024, 7, 20))
    conflicts = detect_conflicts(
        date(2024, 7, 1), date(2024, 7, 14), 1, "Plataforma", Role.CONTRIBUTOR, [b]
    )
    assert len(conflicts) == 1
    assert conflicts[0].type == ConflictType.SAME_TEAM
    assert conflicts[0].as_dict()["request_ids"] == [10]
    assert "1 pessoa(s)" in conflicts[0].message


def test_conflicts_are_symmetric():
    a = _vacation(1, 1, "Plataforma", date(2024, 7, 1), date(2024, 7, 14))
    b = _vacation(2, 2, "Plataforma", date(2024, 7, 10), date(2024, 7, 20))
    from_a = detect_conflicts(a.start_date, a.end_date, 1, "Plataforma", Role.CONTRIBUTOR, [b])
    from_b = detect_conflicts(b.start_date, b.end_date, 2, "Plataforma", Role.CONTRIBUTOR, [a])
    assert from_a and from_b
    assert from_a[0].requests == [b]
    assert from_b[0].requests == [a]


def test_other_team_and_own_requests_are_ignored():
    other_team = _vacation(1, 2, "Dados", date(2024, 7, 1), date(2024, 7, 14))
    own = _vacation(2, 1, "Plataforma", date(2024, 7, 1), date(2024, 7, 14))
    conflicts = detect_conflicts(
        date(2024, 7, 1), date(2024, 7, 14), 1, "Plataforma", Role.CONTRIBUTOR, [other_team, own]
    )
    assert conflicts == []


def test_pending_requests_do_not_block():
    pending = _vacation(1, 2, "Plataforma", date(2024, 7, 1), date(2024, 7, 14),
                        status=RequestStatus.MANAGER_REVIEW)
    assert detect_conflicts(
        date(2024, 7, 1), date(2024, 7, 14), 1, "Plataforma", Role.CONTRIBUTOR, [pending]
    ) == []


def test_non_overlapping_periods_do_not_conflict():
    b = _vacation(1, 2, "Plataforma", date(2024, 7, 15), date(2024, 7, 20))
    assert detect_conflicts(
        date(2024, 7, 1), date(2024, 7, 14), 1, "Plataforma", Role.CONTRIBUTOR, [b]
    ) == []


def test_management_overlap_across_teams():
    """Two managers from different teams may not be away at the same time."""
    other_manager = _vacation(5, 9, "Dados", date(2024, 7, 1), date(2024, 7, 10), role=Role.MANAGER)
    conflicts = detect_conflicts(
        date(2024, 7, 5), date(2024, 7, 12), 1, "Plataforma", Role.MANAGER, [other_manager]
    )
    assert [c.type for c in conflicts] == [ConflictType.MANAGEMENT]


def test_contributors_are_not_checked_for_management_overlap():
    other_manager = _vacation(5, 9, "Dados", date(2024, 7, 1), date(2024, 7, 10), role=Role.MANAGER)
    assert detect_conflicts(
        date(2024, 7, 5), date(2024, 7, 12), 1, "Plataforma", Role.CONTRIBUTOR, [other_manager]
    ) == []


def test_describe_overlap():
    b = _vacation(1, 2, "Plataforma", date(2024, 7, 5), date(2024, 7, 20), name="Bruno Lima")
    assert describe_overlap(b) == "Bruno Lima (05/07/2024 - 20/07/2024)"
