"""Tests for the absence-request HTTP surface."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient

from leavedesk.rules.enums import AbsenceType, RequestStatus, Role

API = "/api/v1/requests"


def _iso(day: date) -> str:
    return day.isoformat()


@pytest.fixture
async def team(make_person):
    director = await make_person(name="Diretora", role=Role.DIRECTOR)
    manager = await make_person(name="Gestor", role=Role.MANAGER, manager=director)
    ana = await make_person(name="Ana", manager=manager)
    bruno = await make_person(name="Bruno", manager=manager)
    return {"director": director, "manager": manager, "ana": ana, "bruno": bruno}


@pytest.fixture
def next_month():
    start = date.today() + timedelta(days=45)
    return start, start + timedelta(days=9)


@pytest.mark.asyncio
async def test_validate_reports_same_team_conflict(
    async_client: AsyncClient, team, make_request, auth_headers, next_month
):
    """Live validation answers 200 with the conflict list instead of failing the call."""
    start, end = next_month
    blocking = await make_request(team["bruno"], start, end)

    response = await async_client.post(
        f"{API}/validate",
        json={"absence_type": "FERIAS", "start_date": _iso(start), "end_date": _iso(end)},
        headers=auth_headers(team["ana"]),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is False
    assert data["conflicts"][0]["type"] == "sub_time"
    assert data["conflicts"][0]["request_ids"] == [blocking.id]
    assert data["balance"]["balance_days"] > 0


@pytest.mark.asyncio
async def test_validate_accepts_brazilian_dates(async_client: AsyncClient, team, auth_headers, next_month):
    start, end = next_month
    response = await async_client.post(
        f"{API}/validate",
        json={
            "absence_type": "FERIAS",
            "start_date": start.strftime("%d/%m/%Y"),
            "end_date": end.strftime("%d/%m/%Y"),
        },
        headers=auth_headers(team["ana"]),
    )
    assert response.status_code == 200
    assert response.json()["valid"] is True
    assert response.json()["end_date"] == _iso(end)


@pytest.mark.asyncio
async def test_validate_rejects_unparseable_date(async_client: AsyncClient, team, auth_headers):
    response = await async_client.post(
        f"{API}/validate",
        json={"absence_type": "FERIAS", "start_date": "31/31/2024", "end_date": "2024-07-10"},
        headers=auth_headers(team["ana"]),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_validate_for_colleague_is_forbidden(async_client: AsyncClient, team, auth_headers, next_month):
    start, end = next_month
    response = await async_client.post(
        f"{API}/validate",
        json={
            "absence_type": "LICENCA_MEDICA",
            "person_id": team["bruno"].id,
            "start_date": _iso(start),
            "end_date": _iso(end),
        },
        headers=auth_headers(team["ana"]),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_maternity_validate_endpoint(async_client: AsyncClient, make_person, auth_headers):
    person = await make_person(maternity_extension_days=60)
    response = await async_client.post(
        f"{API}/maternity/validate",
        json={"start_date": "2025-02-01"},
        headers=auth_headers(person),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_days"] == 180
    assert data["requires_exception_justification"] is True
    assert data["end_date"] == "2025-07-30"


@pytest.mark.asyncio
async def test_create_and_approve_through_both_levels(
    async_client: AsyncClient, team, auth_headers, next_month
):
    start, end = next_month
    created = await async_client.post(
        API,
        json={"absence_type": "FERIAS", "start_date": _iso(start), "end_date": _iso(end)},
        headers=auth_headers(team["ana"]),
    )
    assert created.status_code == 201
    request = created.json()
    assert request["status"] == RequestStatus.MANAGER_REVIEW.value
    assert request["requester"]["name"] == "Ana"

    # Ana cannot approve her own request
    forbidden = await async_client.post(
        f"{API}/{request['id']}/approve", headers=auth_headers(team["ana"])
    )
    assert forbidden.status_code == 403

    first = await async_client.post(
        f"{API}/{request['id']}/approve",
        json={"comment": "De acordo"},
        headers=auth_headers(team["manager"]),
    )
    assert first.status_code == 200
    assert first.json()["status"] == RequestStatus.DIRECTOR_REVIEW.value

    final = await async_client.post(
        f"{API}/{request['id']}/approve", headers=auth_headers(team["director"])
    )
    assert final.status_code == 200
    assert final.json()["status"] == RequestStatus.FINAL_APPROVED.value

    approvals = await async_client.get(
        f"{API}/{request['id']}/approvals", headers=auth_headers(team["ana"])
    )
    assert [a["level"] for a in approvals.json()] == ["GESTOR", "DIRETOR"]


@pytest.mark.asyncio
async def test_conflicting_create_writes_nothing(
    async_client: AsyncClient, team, make_request, auth_headers, next_month
):
    start, end = next_month
    await make_request(team["bruno"], start, end)

    response = await async_client.post(
        API,
        json={"absence_type": "FERIAS", "start_date": _iso(start), "end_date": _iso(end)},
        headers=auth_headers(team["ana"]),
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["conflicts"]

    mine = await async_client.get(API, headers=auth_headers(team["ana"]))
    assert mine.json() == []


@pytest.mark.asyncio
async def test_draft_edit_submit_flow(async_client: AsyncClient, team, auth_headers, next_month):
    start, end = next_month
    headers = auth_headers(team["ana"])
    draft = await async_client.post(
        f"{API}?submit=false",
        json={"absence_type": "FERIAS", "start_date": _iso(start)},
        headers=headers,
    )
    assert draft.status_code == 201
    request_id = draft.json()["id"]
    assert draft.json()["status"] == RequestStatus.DRAFT.value

    edited = await async_client.put(
        f"{API}/{request_id}", json={"end_date": _iso(end)}, headers=headers
    )
    assert edited.status_code == 200
    assert edited.json()["end_date"] == _iso(end)

    submitted = await async_client.post(f"{API}/{request_id}/submit", headers=headers)
    assert submitted.status_code == 200
    assert submitted.json()["status"] == RequestStatus.MANAGER_REVIEW.value

    again = await async_client.post(f"{API}/{request_id}/submit", headers=headers)
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_reject_needs_a_reason(async_client: AsyncClient, team, auth_headers, next_month):
    start, end = next_month
    created = await async_client.post(
        API,
        json={"absence_type": "LICENCA_MEDICA", "start_date": _iso(start), "end_date": _iso(end)},
        headers=auth_headers(team["ana"]),
    )
    request_id = created.json()["id"]

    missing = await async_client.post(
        f"{API}/{request_id}/reject", json={"comment": ""}, headers=auth_headers(team["manager"])
    )
    assert missing.status_code == 400

    rejected = await async_client.post(
        f"{API}/{request_id}/reject",
        json={"comment": "Sem atestado"},
        headers=auth_headers(team["manager"]),
    )
    assert rejected.json()["status"] == RequestStatus.REJECTED.value


@pytest.mark.asyncio
async def test_cancel_and_delete(async_client: AsyncClient, team, auth_headers, next_month):
    start, end = next_month
    headers = auth_headers(team["ana"])
    created = await async_client.post(
        API,
        json={"absence_type": "FERIAS", "start_date": _iso(start), "end_date": _iso(end)},
        headers=headers,
    )
    request_id = created.json()["id"]

    cancelled = await async_client.post(
        f"{API}/{request_id}/cancel", json={"comment": "Mudei de ideia"}, headers=headers
    )
    assert cancelled.json()["status"] == RequestStatus.CANCELLED.value

    director = auth_headers(team["director"])
    no_reason = await async_client.delete(f"{API}/{request_id}", headers=director)
    assert no_reason.status_code == 400

    deleted = await async_client.delete(
        f"{API}/{request_id}", params={"justification": "Registro duplicado"}, headers=director
    )
    assert deleted.status_code == 200
    assert deleted.json()["success"] is True

    gone = await async_client.get(f"{API}/{request_id}", headers=director)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_historical_endpoint(async_client: AsyncClient, team, auth_headers):
    payload = {
        "requester_id": team["ana"].id,
        "absence_type": AbsenceType.VACATION.value,
        "start_date": "2022-07-01",
        "end_date": "2022-07-15",
        "original_channel": "e-mail",
        "admin_observations": "Importado da planilha de 2022",
    }
    forbidden = await async_client.post(
        f"{API}/historical", json=payload, headers=auth_headers(team["manager"])
    )
    assert forbidden.status_code == 403

    created = await async_client.post(
        f"{API}/historical", json=payload, headers=auth_headers(team["director"])
    )
    assert created.status_code == 201
    data = created.json()
    assert data["is_historical"] is True
    assert data["status"] == RequestStatus.REALIZED.value

    bad_status = await async_client.post(
        f"{API}/historical",
        json={**payload, "status": "PENDENTE"},
        headers=auth_headers(team["director"]),
    )
    assert bad_status.status_code == 422


@pytest.mark.asyncio
async def test_unknown_request(async_client: AsyncClient, team, auth_headers):
    response = await async_client.get(f"{API}/9999", headers=auth_headers(team["director"]))
    assert response.status_code == 404
    assert response.json()["detail"] == "Solicitação não encontrada"


@pytest.mark.asyncio
async def test_requests_need_authentication(async_client: AsyncClient, db_engine):
    response = await async_client.get(API)
    assert response.status_code == 401
