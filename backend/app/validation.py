# Overview: Error taxonomy shared by services and routes, plus identifier coercion.

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for errors the service layer raises on purpose."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ServiceError, ValueError):
    """400-level input problem (bad filter, projection or sort shape)."""
    status_code = 400


class NotFoundError(ServiceError):
    """Entity id not found, or a read-only entity targeted for delete."""
    status_code = 404


class ConflictError(ServiceError, ValueError):
    """409-level unique-field collision (e.g., duplicate IMEI)."""
    status_code = 409


class BusinessRuleViolation(ServiceError):
    """422-level request that is well-formed but not allowed."""
    status_code = 422


class UpstreamStoreError(ServiceError):
    """Store connectivity failure or a statement the store could not run."""
    status_code = 503


def coerce_identifier(value: Any, field: str = "id") -> int:
    """
    Convert an identifier coming from JSON/query strings to the store's
    native integer id.

    Accepts ints and plain digit strings. Booleans, floats and anything else
    are rejected.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an identifier")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)
    raise ValidationError(f"{field} must be an identifier, got {value!r}")


def coerce_positive_int(value: Any, field: str, *, allow_zero: bool = False) -> int:
    """Strict integer check used for quantities and page sizes."""
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            value = int(value.strip())
        else:
            raise ValidationError(f"{field} must be an integer")
    minimum = 0 if allow_zero else 1
    if value < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return value
