"""
Domain error taxonomy + global exception handlers.

Services raise the domain errors below; the handlers translate them into
JSON responses and prevent stack-trace leakage to clients.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class LeaveDeskError(Exception):
    """Base class for every error raised by the rule engine and services."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LeaveDeskError):
    """Expected, user-facing rule violation (balance, eligibility, conflicts...)."""

    status_code = 400

    def __init__(self, message: str, conflicts: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.conflicts = conflicts or []


class StatusTransitionError(ValidationError):
    """Requested status change is not an edge of the request state machine."""


class AuthorizationError(LeaveDeskError):
    status_code = 403


class NotFoundError(LeaveDeskError):
    status_code = 404


class BackendError(LeaveDeskError):
    """Unexpected persistence failure; the message shown to clients is generic."""

    status_code = 503


# ── Handlers ────────────────────────────────────────────────────────
async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
    )


async def _validation_error_handler(_request: Request, exc: ValidationError) -> JSONResponse:
    logger.info("Validation failed: %s", exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "success": False, "conflicts": exc.conflicts},
    )


async def _backend_error_handler(_request: Request, exc: BackendError) -> JSONResponse:
    logger.error("Backend failure: %s", exc.message, exc_info=True)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": "Falha ao acessar o banco de dados", "success": False},
    )


async def _domain_error_handler(_request: Request, exc: LeaveDeskError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "success": False},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(BackendError, _backend_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(LeaveDeskError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
