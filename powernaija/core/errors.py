"""
Typed application errors.

Services raise these; the exception handlers registered in ``powernaija.main``
turn them into ``{"success": false, "error": ..., "code": ...}`` responses.
"""

from sqlalchemy.exc import IntegrityError


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message or self.default_message
        if code:
            self.code = code
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message, "code": self.code}
        if self.errors:
            body["errors"] = self.errors
        return body


class BadRequestError(AppError):
    status_code = 400
    code = "BAD_REQUEST"
    default_message = "Bad request"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists"


class ValidationFailedError(AppError):
    status_code = 422
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class TooManyRequestsError(AppError):
    status_code = 429
    code = "TOO_MANY_REQUESTS"
    default_message = "Too many requests, please try again later."


class InternalError(AppError):
    pass


class ServiceUnavailableError(AppError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"
    default_message = "Service unavailable"


def error_from_integrity(exc: IntegrityError) -> AppError:
    """Map a datastore constraint violation onto the error taxonomy."""
    detail = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()

    if "unique" in detail or "duplicate key" in detail:
        return ConflictError(
            "A record with these details already exists",
            code="UNIQUE_CONSTRAINT_VIOLATION",
        )
    if "foreign key" in detail:
        return BadRequestError(
            "Related record not found", code="FOREIGN_KEY_VIOLATION"
        )
    if "not null" in detail or "null value" in detail:
        return BadRequestError(
            "Required relationship is missing", code="REQUIRED_RELATION_VIOLATION"
        )
    if "check constraint" in detail:
        return BadRequestError("Invalid data provided", code="CHECK_VIOLATION")
    return InternalError("Database error occurred", code="DATABASE_ERROR")
