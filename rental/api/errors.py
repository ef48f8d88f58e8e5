"""
Exception handlers mapping domain errors to consistent JSON responses.

Body shape: ``{"error_code": ..., "message": ..., "details": {...}}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from rental.domain.exceptions import (
    ConflictError,
    InvalidTransition,
    NotFoundError,
    RentalError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[RentalError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidTransition: status.HTTP_409_CONFLICT,
}


def status_code_for(exc: RentalError) -> int:
    for error_type, code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def rental_error_handler(request: Request, exc: RentalError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code_for(exc),
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Constraint violations that slipped past validation (races, FK deletes)."""
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "error_code": "ERR_INTEGRITY",
            "message": "The request conflicts with existing data",
            "details": {},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RentalError, rental_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
