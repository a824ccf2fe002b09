"""
Error Handling Utilities
Domain error taxonomy, sanitized error messages and consistent error responses.
"""

import logging
from enum import Enum
from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error codes for frontend handling."""

    # Authentication
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"
    NOT_AUTHENTICATED = "not_authenticated"

    # Organisation access
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"

    # General errors
    VALIDATION_ERROR = "validation_error"
    INTERNAL_ERROR = "internal_error"
    SERVICE_UNAVAILABLE = "service_unavailable"


# User-friendly error messages
ERROR_MESSAGES = {
    ErrorCode.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorCode.RATE_LIMITED: "Too many failed login attempts. Please try again later.",
    ErrorCode.NOT_AUTHENTICATED: "Unauthorized",
    ErrorCode.UNAUTHORIZED: "Only organisation owners can perform this action.",
    ErrorCode.NOT_FOUND: "The requested item could not be found.",
    ErrorCode.INVALID_REQUEST: "This request cannot be applied.",
    ErrorCode.VALIDATION_ERROR: "Invalid request. Please check your input and try again.",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Please try again later.",
    ErrorCode.SERVICE_UNAVAILABLE: "Service temporarily unavailable. Please try again in a moment.",
}


class PortalError(Exception):
    """
    Base class for errors that are reported to the caller.

    Subclasses fix the error code and HTTP status; ``extra`` carries the
    structured fields the front end needs to render a specific message.
    """

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or ERROR_MESSAGES[self.error_code]
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error_code": self.error_code.value, "message": self.message, **self.extra}


class InvalidCredentials(PortalError):
    """Wrong email or password. Never says which."""

    error_code = ErrorCode.INVALID_CREDENTIALS
    http_status = status.HTTP_401_UNAUTHORIZED

    def __init__(self, attempts_remaining: Optional[int] = None):
        extra = {}
        if attempts_remaining is not None:
            extra["attempts_remaining"] = attempts_remaining
        super().__init__(**extra)
        self.attempts_remaining = attempts_remaining


class RateLimited(PortalError):
    """Too many failures from one source; recoverable by waiting."""

    error_code = ErrorCode.RATE_LIMITED
    http_status = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        retry_after_seconds: int,
        message: Optional[str] = None,
        attempts_remaining: Optional[int] = None,
    ):
        minutes = max(1, -(-retry_after_seconds // 60))
        extra = {"retry_after_seconds": retry_after_seconds, "locked": True}
        if attempts_remaining is not None:
            extra["attempts_remaining"] = attempts_remaining
        super().__init__(
            message or f"Too many failed login attempts. Please try again in {minutes} minute(s).",
            **extra,
        )
        self.retry_after_seconds = retry_after_seconds


class NotAuthenticated(PortalError):
    error_code = ErrorCode.NOT_AUTHENTICATED
    http_status = status.HTTP_401_UNAUTHORIZED


class Unauthorized(PortalError):
    """Authenticated, but lacking the role the operation needs."""

    error_code = ErrorCode.UNAUTHORIZED
    http_status = status.HTTP_403_FORBIDDEN


class NotFound(PortalError):
    """Unknown id, or an id outside the caller's organisation."""

    error_code = ErrorCode.NOT_FOUND
    http_status = status.HTTP_404_NOT_FOUND


class InvalidRequest(PortalError):
    error_code = ErrorCode.INVALID_REQUEST
    http_status = status.HTTP_400_BAD_REQUEST


class TransportFailure(Exception):
    """
    Downstream email delivery failed.

    Never reaches a client: the notification dispatcher logs and drops it.
    """

    def __init__(self, message: str, notification_type: Optional[str] = None):
        self.notification_type = notification_type
        super().__init__(message)


def sanitize_error_message(
    exception: Exception,
    error_code: ErrorCode,
    log_details: bool = True,
) -> str:
    """
    Sanitize error message for user-facing responses.

    Logs full exception details internally but returns user-friendly message.

    Args:
        exception: The exception that occurred
        error_code: Error code for categorization
        log_details: Whether to log full exception details

    Returns:
        User-friendly error message
    """
    if log_details:
        logger.error(
            "Error [%s]: %s",
            error_code.value,
            str(exception),
            exc_info=exception,
        )

    return ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR])


def get_error_code_for_exception(exception: Exception) -> tuple[ErrorCode, int]:
    """
    Map exception types to error codes and HTTP status codes.

    Args:
        exception: The exception that occurred

    Returns:
        Tuple of (error_code, http_status_code)
    """
    if isinstance(exception, PortalError):
        return exception.error_code, exception.http_status

    if isinstance(exception, ValueError):
        return ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST

    return ErrorCode.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR


async def portal_error_handler(_request: Request, exc: PortalError) -> JSONResponse:
    """Render a domain error with its structured fields."""
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict(), headers=headers)


async def global_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for FastAPI.

    Catches all unhandled exceptions and returns sanitized error responses.
    Excludes HTTPException (intentional responses) and ValidationError (FastAPI validation).
    """
    if isinstance(exc, HTTPException):
        raise exc

    if isinstance(exc, RequestValidationError):
        raise exc

    error_code, http_status = get_error_code_for_exception(exc)
    message = sanitize_error_message(exc, error_code)

    return JSONResponse(
        status_code=http_status,
        content={
            "error_code": error_code.value,
            "message": message,
        },
    )
