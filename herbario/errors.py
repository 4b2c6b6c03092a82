"""
Application error taxonomy.

Every error the API reports carries a stable machine-readable ``code`` and an
HTTP status. Handlers and middleware raise (or render) these; the boundary
reporter in ``herbario.api.errors`` turns them into the uniform error body.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors reported to API callers."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Any] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    """Client-fixable input problem."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation error"


class MissingCredentialsError(AppError):
    status_code = 400
    code = "MISSING_CREDENTIALS"
    default_message = "Email and password are required"


class InvalidCredentialsError(AppError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class TokenError(AppError):
    """Bearer token could not be accepted."""

    status_code = 401
    code = "INVALID_OR_EXPIRED_TOKEN"
    default_message = "Invalid or expired token"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        reason: Optional[str] = None,
    ):
        self.reason = reason
        super().__init__(message, details)


class MissingTokenError(TokenError):
    code = "MISSING_TOKEN"
    default_message = "Bearer token required"


class InvalidTokenError(TokenError):
    code = "INVALID_TOKEN"
    default_message = "Invalid token"


class ExpiredOrInvalidTokenError(TokenError):
    code = "INVALID_OR_EXPIRED_TOKEN"
    default_message = "Invalid or expired token"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Admin role required"


class OriginNotAllowedError(AppError):
    status_code = 403
    code = "ORIGIN_NOT_ALLOWED"
    default_message = "Origin not allowed"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"

    def __init__(self, resource: str = "Resource", resource_id: Optional[Any] = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class PayloadTooLargeError(AppError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"
    default_message = "Payload too large"


class RateLimitExceededError(AppError):
    status_code = 429
    code = "RATE_LIMITED"
    default_message = "Too many requests, please try again later"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message)


class StorageError(AppError):
    """Storage call failed or timed out. Callers may retry."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Storage operation failed"
