"""
Auth endpoints: login (OAuth2 password flow), token refresh, logout, me.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.api.v1.deps import get_current_active_person, get_db
from leavedesk.core.config import settings
from leavedesk.core.rate_limit import limiter
from leavedesk.core.security import (create_access_token, create_refresh_token,
                                     decode_refresh_token, verify_password)
from leavedesk.models.person import Person
from leavedesk.schemas.person import PersonRead
from leavedesk.schemas.token import LogoutResponse, RefreshRequest, Token
from leavedesk.services.repository import fetch_person, fetch_person_by_email

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
async def login_for_access_token(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Token:
    """Authenticate with e-mail/password. Tokens are returned and also set as HttpOnly cookies."""
    person = await fetch_person_by_email(db, form_data.username)

    if person is None or not verify_password(form_data.password, person.hashed_password):
        logger.info("Failed login for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="E-mail ou senha incorretos",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not person.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Conta inativa",
        )

    access_token = create_access_token(person.id)
    refresh_token = create_refresh_token(person.id)
    _set_auth_cookies(response, access_token, refresh_token)
    return Token(access_token=access_token, refresh_token=refresh_token)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh_access_token_endpoint(
    response: Response,
    request: Request,
    body: RefreshRequest | None = None,
    refresh_token_cookie: str | None = Cookie(None, alias="refresh_token"),
    db: AsyncSession = Depends(get_db),
) -> Token:
    # Priority: Body > Cookie
    token_str = body.refresh_token if body and body.refresh_token else refresh_token_cookie
    if not token_str:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token ausente",
        )

    payload = decode_refresh_token(token_str)
    subject = payload.get("sub") if payload else None
    if subject is None or not str(subject).isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token inválido ou expirado",
        )

    person = await fetch_person(db, int(subject))
    if person is None or not person.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Pessoa não encontrada ou inativa",
        )

    new_access = create_access_token(person.id)
    new_refresh = create_refresh_token(person.id)
    _set_auth_cookies(response, new_access, new_refresh)
    return Token(access_token=new_access, refresh_token=new_refresh)


@router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response) -> LogoutResponse:
    """Clear auth cookies and end the session."""
    response.delete_cookie("access_token")
    response.delete_cookie("refresh_token")
    return LogoutResponse(message="Sessão encerrada")


@router.get("/me", response_model=PersonRead)
async def read_current_person(
    current_person: Person = Depends(get_current_active_person),
) -> Person:
    """Return the profile of the authenticated person."""
    return current_person
