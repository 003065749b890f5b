"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from leavedesk.api.v1.endpoints import auth, balances, people, reports, requests

api_router = APIRouter()

# Login, refresh, logout, me
api_router.include_router(auth.router)

# People, self-service profile, pending registrations
api_router.include_router(people.router)

# Absence requests: validation and lifecycle
api_router.include_router(requests.router)

# Vacation balances
api_router.include_router(balances.router)

# Active absences, health, status
api_router.include_router(reports.router)
