"""
Domain error taxonomy.

Every error raised by the services derives from ``RentalError`` so the
API layer and the background workers can handle them uniformly.  The
errors carry no HTTP knowledge; the mapping lives in ``rental.api.errors``.
"""

from __future__ import annotations

from typing import Any, Optional


class RentalError(Exception):
    """Base class for business errors."""

    error_code = "ERR_RENTAL"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(RentalError):
    """Malformed input: missing field, end not after start, start in the past."""

    error_code = "ERR_VALIDATION"


class NotFoundError(RentalError):
    """A referenced client, vehicle or contract does not exist."""

    error_code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            f"{resource} with ID {resource_id} not found",
            details={"resource": resource, "id": resource_id},
        )


class ConflictError(RentalError):
    """Vehicle already committed for the interval, broken down, or duplicate data."""

    error_code = "ERR_CONFLICT"


class InvalidTransition(RentalError):
    """Requested status change is not reachable from the current status."""

    error_code = "ERR_INVALID_TRANSITION"
