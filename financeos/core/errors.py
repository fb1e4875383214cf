"""Exception hierarchy rendered as ``{"error": message}`` responses."""
from __future__ import annotations


class FinanceError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class AuthError(FinanceError):
    """Missing, invalid or expired bearer token, or bad credentials."""

    status_code = 401
    default_message = "Authorization required"


class AuthorizationError(FinanceError):
    """Authenticated caller lacks the role or verification a resource needs."""

    status_code = 403
    default_message = "Access denied"


class ValidationError(FinanceError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(FinanceError):
    status_code = 404
    default_message = "Not found"


class UpstreamError(FinanceError):
    """Database or AI gateway failure surfaced with a generic message."""

    status_code = 500
    default_message = "AI service unavailable"


class UpstreamRateLimited(UpstreamError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class UpstreamQuotaExceeded(UpstreamError):
    status_code = 402
    default_message = "AI credits exhausted."


class ConfigurationError(FinanceError):
    status_code = 500
    default_message = "AI gateway not configured"


__all__ = [
    "FinanceError",
    "AuthError",
    "AuthorizationError",
    "ValidationError",
    "NotFoundError",
    "UpstreamError",
    "UpstreamRateLimited",
    "UpstreamQuotaExceeded",
    "ConfigurationError",
]
