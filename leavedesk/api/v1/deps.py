"""
FastAPI dependencies: database session, auth guards and the acting context.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.core.security import decode_access_token
from leavedesk.db.session import async_session_factory
from leavedesk.models.person import Person
from leavedesk.rules.enums import is_privileged
from leavedesk.services.repository import fetch_person
from leavedesk.services.validation import ActingContext

# auto_error=False so the HttpOnly cookie can be used when the header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_person(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),
    db: AsyncSession = Depends(get_db),
) -> Person:
    """Decode JWT from header or cookie and load the person; role flags come from the DB."""
    final_token = token
    if not final_token and access_token:
        # Cookie is stored as "Bearer <token>"
        final_token = access_token.split(" ", 1)[1] if access_token.startswith("Bearer ") else access_token

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Não foi possível validar as credenciais",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    subject: str | None = payload.get("sub")
    if subject is None or not subject.isdigit():
        raise credentials_exc

    person = await fetch_person(db, int(subject))
    if person is None:
        raise credentials_exc
    return person


async def get_current_active_person(
    current_person: Person = Depends(get_current_person),
) -> Person:
    """Reject deactivated accounts."""
    if not current_person.is_active:
        raise HTTPException(status_code=400, detail="Conta inativa")
    return current_person


async def require_privileged(
    current_person: Person = Depends(get_current_active_person),
) -> Person:
    """Only directors and admins proceed."""
    if not is_privileged(current_person.role, current_person.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito a diretores e administradores",
        )
    return current_person


async def get_acting_context(
    current_person: Person = Depends(get_current_active_person),
) -> ActingContext:
    return ActingContext(current_person)
