"""
Domain errors - one taxonomy shared by repositories, services and views.
Challenge: Map backend failures to a user-visible message plus a retry hint.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class BarterError(Exception):
    """Base error. Subclasses set the HTTP status, stable code and retry hint."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "unknown"
    retryable: bool = False

    def __init__(self, message: str = "Something went wrong"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, "retryable": self.retryable}


class AuthError(BarterError):
    """Bad credentials, duplicate username/email, missing session."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "auth_error"


class PermissionDeniedError(AuthError):
    """Authenticated, but not allowed to act on this row."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"


class NotFoundError(BarterError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(BarterError):
    """Unique-constraint violation or stale state."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class InvalidTransitionError(ConflictError):
    """Trade is already in a terminal state."""

    code = "invalid_transition"


class UploadError(BarterError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upload_error"
    retryable = True


class ValidationError(BarterError):
    """Empty required field, bad value. Not to be confused with pydantic's."""

    status_code = 422
    code = "validation_error"


class UnknownError(BarterError):
    code = "unknown"
    retryable = True


def describe(exc: Exception) -> str:
    """User-facing message for any exception (views fall back to a generic one)."""
    if isinstance(exc, BarterError):
        return exc.message
    return UnknownError().message


async def barter_error_handler(request: Request, exc: BarterError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = UnknownError()
    return JSONResponse(status_code=err.status_code, content=err.to_dict())
