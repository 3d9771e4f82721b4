"""
Domain error hierarchy shared by services, repositories and the API layer.

Every error carries the HTTP status it maps to, a stable machine-readable
code and free-form keyword context for logging. The context is never sent
to clients; only ``message`` and ``code`` (plus validation ``details``) are.
"""

from typing import Any, Optional

from fastapi import status


class TradeInError(Exception):
    """Base exception for the trade-in application."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        code: Optional[str] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context = context


# --- Validation (400) ---
class ValidationError(TradeInError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str = "Invalid request",
        details: Optional[list[dict[str, Any]]] = None,
        **context: Any,
    ):
        super().__init__(message, **context)
        self.details = details or []


# --- Authentication / Authorization (401/403) ---
class AuthenticationError(TradeInError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required", **context: Any):
        super().__init__(message, **context)


class PermissionDeniedError(TradeInError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied", **context: Any):
        super().__init__(message, **context)


# --- Not Found (404) ---
class NotFoundError(TradeInError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found", **context: Any):
        super().__init__(message, **context)


# --- Conflict (409) ---
class ConflictError(TradeInError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"

    def __init__(self, message: str = "Resource conflict", **context: Any):
        super().__init__(message, **context)


# --- Rate limiting (429) ---
class RateLimitError(TradeInError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"

    def __init__(
        self,
        message: str = "Too many requests",
        retry_after: int = 1,
        **context: Any,
    ):
        super().__init__(message, **context)
        self.retry_after = retry_after


def error_body(
    message: str,
    code: str,
    details: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """Build the ``{"error": {...}}`` envelope returned for every failure."""
    error: dict[str, Any] = {"message": message, "code": code}
    if details:
        error["details"] = details
    return {"error": error}
