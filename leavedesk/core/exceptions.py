"""
Domain errors and global exception handlers.

Service code raises the domain errors below; the handlers translate them
into JSON responses that carry the error kind, and keep stack traces away
from clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400
    kind = "domain_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(DomainError):
    """Malformed input: bad date range, missing substitute, unknown code."""

    status_code = 422
    kind = "validation_error"


class NotFoundError(DomainError):
    """Referenced absence, user or record does not exist."""

    status_code = 404
    kind = "not_found"


class InvalidStateError(DomainError):
    """Transition attempted from a state that does not allow it."""

    status_code = 409
    kind = "invalid_state"


class ForbiddenError(DomainError):
    """Caller has no authority over the target record."""

    status_code = 403
    kind = "forbidden"


async def _domain_error_handler(_request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Domain error: %s", exc.detail)
    else:
        logger.info("%s: %s", exc.kind, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.kind, "success": False},
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
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
    app.add_exception_handler(DomainError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
