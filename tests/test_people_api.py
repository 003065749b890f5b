"""Tests for the people, profile and pending-registration endpoints."""

import pytest
from httpx import AsyncClient

from leavedesk.rules.enums import Role


@pytest.mark.asyncio
async def test_director_creates_person(async_client: AsyncClient, make_person, auth_headers):
    director = await make_person(role=Role.DIRECTOR)
    response = await async_client.post(
        "/api/v1/people",
        json={
            "name": "Rita Campos",
            "email": "rita@example.com",
            "team": "Dados",
            "contract_start": "2021-05-03",
            "contract_model": "CLT_ABONO_FIXO",
            "manager_id": director.id,
        },
        headers=auth_headers(director),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "rita@example.com"
    assert data["role"] == "COLABORADOR"
    assert data["contract_model"] == "CLT_ABONO_FIXO"


@pytest.mark.asyncio
async def test_contributor_cannot_create_person(async_client: AsyncClient, make_person, auth_headers):
    person = await make_person()
    response = await async_client.post(
        "/api/v1/people",
        json={"name": "X", "email": "x@example.com"},
        headers=auth_headers(person),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invalid_email_is_422(async_client: AsyncClient, make_person, auth_headers):
    director = await make_person(role=Role.DIRECTOR)
    response = await async_client.post(
        "/api/v1/people", json={"name": "X", "email": "sem-arroba"}, headers=auth_headers(director)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_cycle_via_api(async_client: AsyncClient, make_person, auth_headers):
    director = await make_person(role=Role.DIRECTOR)
    manager = await make_person(role=Role.MANAGER, manager=director)
    response = await async_client.put(
        f"/api/v1/people/{director.id}",
        json={"manager_id": manager.id},
        headers=auth_headers(director),
    )
    assert response.status_code == 400
    assert "ciclo" in response.json()["detail"]


@pytest.mark.asyncio
async def test_soft_delete(async_client: AsyncClient, make_person, auth_headers):
    director = await make_person(role=Role.DIRECTOR)
    person = await make_person()
    response = await async_client.delete(f"/api/v1/people/{person.id}", headers=auth_headers(director))
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    listing = await async_client.get("/api/v1/people", headers=auth_headers(director))
    assert person.id not in [p["id"] for p in listing.json()]

    me = await async_client.get("/api/v1/auth/me", headers=auth_headers(person))
    assert me.status_code == 400


@pytest.mark.asyncio
async def test_first_access_profile(async_client: AsyncClient, make_person, auth_headers):
    person = await make_person(birth_date=None, contract_start=None, contract_model=None)
    response = await async_client.put(
        "/api/v1/people/me/profile",
        json={"birth_date": "10/06/1990", "contract_start": "2021-03-01", "contract_model": "PJ"},
        headers=auth_headers(person),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["birth_date"] == "1990-06-10"
    assert data["contract_model"] == "PJ"


@pytest.mark.asyncio
async def test_day_off_status_endpoint(async_client: AsyncClient, make_person, auth_headers):
    person = await make_person(birth_date=None)
    response = await async_client.get(f"/api/v1/people/{person.id}/day-off", headers=auth_headers(person))
    assert response.status_code == 200
    data = response.json()
    assert data["available"] == 0
    assert data["can_request"] is False
    assert "data de nascimento" in data["message"]


@pytest.mark.asyncio
async def test_pending_registration_flow(async_client: AsyncClient, make_person, auth_headers):
    director = await make_person(role=Role.DIRECTOR)
    manager = await make_person(role=Role.MANAGER, manager=director)

    created = await async_client.post(
        "/api/v1/pending-people",
        json={"name": "Paulo Reis", "email": "paulo@example.com", "team": "Plataforma"},
        headers=auth_headers(manager),
    )
    assert created.status_code == 201
    pending_id = created.json()["id"]
    assert created.json()["status"] == "PENDENTE"

    # Managers cannot approve
    refused = await async_client.post(
        f"/api/v1/pending-people/{pending_id}/approve", headers=auth_headers(manager)
    )
    assert refused.status_code == 403

    approved = await async_client.post(
        f"/api/v1/pending-people/{pending_id}/approve",
        json={"notes": "Aprovado na reunião"},
        headers=auth_headers(director),
    )
    assert approved.status_code == 200
    assert approved.json()["success"] is True
    person_id = approved.json()["person_id"]

    person = await async_client.get(f"/api/v1/people/{person_id}", headers=auth_headers(director))
    assert person.json()["manager_id"] == manager.id

    twice = await async_client.post(
        f"/api/v1/pending-people/{pending_id}/approve", headers=auth_headers(director)
    )
    assert twice.status_code == 400


@pytest.mark.asyncio
async def test_pending_rejection_needs_reason(async_client: AsyncClient, make_person, auth_headers):
    director = await make_person(role=Role.DIRECTOR)
    created = await async_client.post(
        "/api/v1/pending-people",
        json={"name": "Quem", "email": "quem@example.com"},
        headers=auth_headers(director),
    )
    pending_id = created.json()["id"]

    blank = await async_client.post(
        f"/api/v1/pending-people/{pending_id}/reject", json={"reason": ""}, headers=auth_headers(director)
    )
    assert blank.status_code == 400

    rejected = await async_client.post(
        f"/api/v1/pending-people/{pending_id}/reject",
        json={"reason": "Contratação suspensa"},
        headers=auth_headers(director),
    )
    assert rejected.status_code == 200

    listing = await async_client.get(
        "/api/v1/pending-people", params={"status": "REJEITADO"}, headers=auth_headers(director)
    )
    assert [p["id"] for p in listing.json()] == [pending_id]
