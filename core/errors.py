"""
core/errors.py -- Closed error taxonomy shared by every layer.

Each layer raises an AppError subclass. The subclass fixes the ErrorKind, and
api/main.py maps the kind to an HTTP status exactly once. Stores and services
never import FastAPI and never choose status codes themselves.

Layer rule: core/ is the kernel. No imports from api/, auth/, or forms/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    validation = "validation_error"
    duplicate = "duplicate"
    unauthenticated = "unauthenticated"
    invalid_credentials = "invalid_credentials"
    forbidden = "forbidden"
    not_found = "not_found"
    payload_too_large = "payload_too_large"
    internal = "internal_error"


class AppError(Exception):
    """Base class for expected, user-facing failures.

    message is safe to return to the client. detail is optional extra context
    (for example which field collided) and is also client-safe.
    """

    kind: ErrorKind = ErrorKind.internal
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AppError):
    kind = ErrorKind.validation
    default_message = "Request validation failed."


class DuplicateError(AppError):
    kind = ErrorKind.duplicate
    default_message = "Record already exists."


class Unauthenticated(AppError):
    kind = ErrorKind.unauthenticated
    default_message = "Access token is required."


class InvalidCredentials(AppError):
    kind = ErrorKind.invalid_credentials
    default_message = "Invalid credentials."


class Forbidden(AppError):
    kind = ErrorKind.forbidden
    default_message = "Invalid or expired token."


class NotFound(AppError):
    kind = ErrorKind.not_found
    default_message = "Not found."


class PayloadTooLarge(AppError):
    kind = ErrorKind.payload_too_large
    default_message = "Request body is too large."


class InternalError(AppError):
    kind = ErrorKind.internal
