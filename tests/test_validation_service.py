"""Tests for the request validation orchestrator against a real session."""

from datetime import date

import pytest

from leavedesk.core.exceptions import AuthorizationError, ValidationError
from leavedesk.rules.conflicts import ConflictType
from leavedesk.rules.enums import AbsenceType, ContractModel, RequestStatus, Role
from leavedesk.services.validation import ActingContext, validate_request

TODAY = date(2024, 6, 5)


@pytest.mark.asyncio
async def test_vacation_within_balance(db_session, make_person):
    """Contract 15/01/2020: four completed years by June 2024, 120 days available."""
    person = await make_person()
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.VACATION,
        date(2024, 12, 15), date(2024, 12, 28), today=TODAY,
    )
    assert result.valid, result.message
    assert result.balance.balance_days == 120
    assert result.end_date == date(2024, 12, 28)


@pytest.mark.asyncio
async def test_insufficient_balance(db_session, make_person):
    person = await make_person(contract_start=date(2023, 9, 1))
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.VACATION,
        date(2024, 7, 1), date(2024, 7, 10), today=TODAY,
    )
    assert not result.valid
    assert "Saldo insuficiente" in result.message
    with pytest.raises(ValidationError):
        result.raise_for_failure()


@pytest.mark.asyncio
async def test_director_gets_balance_warning_instead_of_failure(db_session, make_person):
    director = await make_person(role=Role.DIRECTOR, contract_start=date(2023, 9, 1))
    result = await validate_request(
        db_session, ActingContext(director), director.id, AbsenceType.VACATION,
        date(2024, 7, 1), date(2024, 7, 10), today=TODAY,
    )
    assert result.valid
    assert any("Saldo insuficiente" in w for w in result.warnings)


@pytest.mark.asyncio
async def test_missing_contract_date(db_session, make_person):
    person = await make_person(contract_start=None)
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.VACATION,
        date(2024, 7, 1), date(2024, 7, 10), today=TODAY,
    )
    assert not result.valid
    assert "data de contrato" in result.message


@pytest.mark.asyncio
async def test_same_team_conflict(db_session, make_person, make_request):
    """A's vacation overlaps B's approved one in the same team: blocked, B's request listed."""
    a = await make_person(name="Ana")
    b = await make_person(name="Bruno")
    b_request = await make_request(b, date(2024, 7, 5), date(2024, 7, 20))

    result = await validate_request(
        db_session, ActingContext(a), a.id, AbsenceType.VACATION,
        date(2024, 7, 1), date(2024, 7, 14), today=TODAY,
    )
    assert not result.valid
    assert result.conflicts[0].type == ConflictType.SAME_TEAM
    assert result.conflict_dicts()[0]["request_ids"] == [b_request.id]


@pytest.mark.asyncio
async def test_conflict_ignores_other_teams_and_pending(db_session, make_person, make_request):
    a = await make_person()
    other_team = await make_person(team="Dados")
    same_team = await make_person()
    await make_request(other_team, date(2024, 7, 1), date(2024, 7, 14))
    await make_request(same_team, date(2024, 7, 1), date(2024, 7, 14), status=RequestStatus.MANAGER_REVIEW)

    result = await validate_request(
        db_session, ActingContext(a), a.id, AbsenceType.VACATION,
        date(2024, 7, 1), date(2024, 7, 14), today=TODAY,
    )
    assert result.valid, result.message
    assert result.conflicts == []


@pytest.mark.asyncio
async def test_director_conflicts_become_warnings(db_session, make_person, make_request):
    director = await make_person(role=Role.DIRECTOR)
    colleague = await make_person()
    await make_request(colleague, date(2024, 7, 5), date(2024, 7, 20))

    result = await validate_request(
        db_session, ActingContext(director), director.id, AbsenceType.VACATION,
        date(2024, 7, 1), date(2024, 7, 14), today=TODAY,
    )
    assert result.valid
    assert result.conflicts
    assert result.warnings


@pytest.mark.asyncio
async def test_fixed_sellback_bounds(db_session, make_person):
    person = await make_person(contract_model=ContractModel.CLT_FIXED_SELLBACK)
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.VACATION,
        date(2024, 7, 1), date(2024, 7, 30), sellback_days=5, today=TODAY,
    )
    assert not result.valid
    assert "deve ser 0 ou 10 dias" in result.message


@pytest.mark.asyncio
async def test_sellback_only_for_vacation(db_session, make_person):
    person = await make_person()
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.MEDICAL_LEAVE,
        date(2024, 7, 1), date(2024, 7, 3), sellback_days=2, today=TODAY,
    )
    assert not result.valid
    assert result.message == "Abono só pode ser solicitado em férias."


@pytest.mark.asyncio
async def test_shape_errors(db_session, make_person):
    person = await make_person()
    ctx = ActingContext(person)

    missing_start = await validate_request(db_session, ctx, person.id, AbsenceType.VACATION, None, None)
    assert not missing_start.valid

    inverted = await validate_request(
        db_session, ctx, person.id, AbsenceType.MEDICAL_LEAVE, date(2024, 7, 10), date(2024, 7, 1)
    )
    assert not inverted.valid
    assert "anterior" in inverted.message

    two_day_off = await validate_request(
        db_session, ctx, person.id, AbsenceType.DAY_OFF, date(2024, 6, 20), date(2024, 6, 21), today=TODAY
    )
    assert not two_day_off.valid


@pytest.mark.asyncio
async def test_medical_leave_is_shape_only(db_session, make_person):
    person = await make_person(contract_start=None, birth_date=None)
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.MEDICAL_LEAVE,
        date(2024, 7, 1), date(2024, 7, 3),
    )
    assert result.valid


@pytest.mark.asyncio
async def test_inactive_person(db_session, make_person):
    director = await make_person(role=Role.DIRECTOR)
    gone = await make_person(is_active=False)
    result = await validate_request(
        db_session, ActingContext(director), gone.id, AbsenceType.MEDICAL_LEAVE,
        date(2024, 7, 1), date(2024, 7, 3),
    )
    assert not result.valid
    assert "inativo" in result.message


@pytest.mark.asyncio
async def test_contributor_cannot_validate_for_colleague(db_session, make_person):
    a = await make_person()
    b = await make_person()
    with pytest.raises(AuthorizationError):
        await validate_request(
            db_session, ActingContext(a), b.id, AbsenceType.MEDICAL_LEAVE,
            date(2024, 7, 1), date(2024, 7, 3),
        )


@pytest.mark.asyncio
async def test_manager_may_validate_for_report(db_session, make_person):
    manager = await make_person(role=Role.MANAGER)
    report = await make_person(manager=manager)
    result = await validate_request(
        db_session, ActingContext(manager), report.id, AbsenceType.MEDICAL_LEAVE,
        date(2024, 7, 1), date(2024, 7, 3),
    )
    assert result.valid


# ── Day-off ─────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_day_off_in_window(db_session, make_person):
    person = await make_person()
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.DAY_OFF,
        date(2024, 6, 20), date(2024, 6, 20), today=TODAY,
    )
    assert result.valid, result.message
    assert result.team_overlaps == []


@pytest.mark.asyncio
async def test_day_off_already_used(db_session, make_person, make_request):
    person = await make_person()
    await make_request(person, date(2024, 6, 7), absence_type=AbsenceType.DAY_OFF)
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.DAY_OFF,
        date(2024, 6, 20), date(2024, 6, 20), today=TODAY,
    )
    assert not result.valid
    assert "já utilizado" in result.message


@pytest.mark.asyncio
async def test_day_off_team_overlap_needs_justification(db_session, make_person, make_request):
    person = await make_person()
    colleague = await make_person(name="Carla")
    await make_request(colleague, date(2024, 6, 18), date(2024, 6, 22), status=RequestStatus.PENDING)

    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.DAY_OFF,
        date(2024, 6, 20), date(2024, 6, 20), today=TODAY,
    )
    assert result.valid
    assert result.requires_justification
    assert "Carla" in result.team_overlaps[0]


# ── Maternity ──────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_maternity_end_date_is_derived(db_session, make_person):
    person = await make_person()
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.MATERNITY_LEAVE,
        date(2025, 2, 1), None, expected_delivery_date=date(2025, 3, 1),
    )
    assert result.valid, result.message
    assert result.maternity.total_days == 120
    assert result.end_date == date(2025, 5, 31)


@pytest.mark.asyncio
async def test_maternity_too_early(db_session, make_person):
    person = await make_person()
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.MATERNITY_LEAVE,
        date(2025, 1, 20), None, expected_delivery_date=date(2025, 3, 1),
    )
    assert not result.valid
    assert "até 28 dias antes" in result.message


@pytest.mark.asyncio
async def test_maternity_wrong_end_date(db_session, make_person):
    person = await make_person()
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.MATERNITY_LEAVE,
        date(2025, 2, 1), date(2025, 4, 1), expected_delivery_date=date(2025, 3, 1),
    )
    assert not result.valid
    assert "31/05/2025" in result.message


@pytest.mark.asyncio
async def test_maternity_extension_requires_justification(db_session, make_person):
    person = await make_person(maternity_extension_days=60)
    ctx = ActingContext(person)
    missing = await validate_request(
        db_session, ctx, person.id, AbsenceType.MATERNITY_LEAVE,
        date(2025, 2, 1), None, expected_delivery_date=date(2025, 3, 1),
    )
    assert not missing.valid
    assert missing.maternity.total_days == 180

    justified = await validate_request(
        db_session, ctx, person.id, AbsenceType.MATERNITY_LEAVE,
        date(2025, 2, 1), None, expected_delivery_date=date(2025, 3, 1),
        contract_exception_justification="Acordo coletivo 2024",
    )
    assert justified.valid
    assert justified.end_date == date(2025, 7, 30)


@pytest.mark.asyncio
async def test_requested_days_must_match_period(db_session, make_person):
    """A 14-day range cannot be validated as a 1-day request."""
    person = await make_person()
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.VACATION,
        date(2024, 12, 15), date(2024, 12, 28), requested_days=1, today=TODAY,
    )
    assert not result.valid
    assert "não confere" in result.message

    matching = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.VACATION,
        date(2024, 12, 15), date(2024, 12, 28), requested_days=14, today=TODAY,
    )
    assert matching.valid, matching.message


@pytest.mark.asyncio
async def test_medical_leave_warns_about_team_capacity(db_session, make_person, make_request):
    person = await make_person()
    colleague = await make_person(name="Carla")
    await make_request(
        colleague, date(2024, 7, 1), date(2024, 7, 10), absence_type=AbsenceType.MEDICAL_LEAVE
    )
    result = await validate_request(
        db_session, ActingContext(person), person.id, AbsenceType.MEDICAL_LEAVE,
        date(2024, 7, 5), date(2024, 7, 8),
    )
    assert result.valid
    assert result.warnings == ["1 colega(s) do time Plataforma já em licença médica neste período."]
