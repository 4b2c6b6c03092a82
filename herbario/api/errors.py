"""
Boundary error reporter.

Builds the uniform error body used by exception handlers and middleware:
``{"error": true, "code", "message", "correlationId", "details"?}``.
"""

import uuid
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from herbario.config import get_settings
from herbario.errors import AppError, RateLimitExceededError
from herbario.logging_config import get_correlation_id

GENERIC_SERVER_MESSAGE = "Internal server error"

_STATUS_CODES: Dict[int, str] = {
    400: "VALIDATION_ERROR",
    401: "INVALID_TOKEN",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    429: "RATE_LIMITED",
}


def code_for_status(status_code: int) -> str:
    if status_code >= 500:
        return "INTERNAL_ERROR"
    return _STATUS_CODES.get(status_code, "HTTP_ERROR")


def correlation_id_for(request: Request) -> str:
    """Correlation id of the current request; generated if middleware did not run."""
    return (
        getattr(request.state, "correlation_id", None)
        or get_correlation_id()
        or str(uuid.uuid4())
    )


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    settings = get_settings()
    correlation_id = correlation_id_for(request)

    if status_code >= 500 and settings.is_production:
        message = GENERIC_SERVER_MESSAGE

    content: Dict[str, Any] = {
        "error": True,
        "code": code,
        "message": message,
        "correlationId": correlation_id,
    }
    if details is not None and not settings.is_production:
        content["details"] = details

    response_headers = {"X-Correlation-ID": correlation_id}
    if headers:
        response_headers.update(headers)
    return JSONResponse(status_code=status_code, content=content, headers=response_headers)


def app_error_response(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after)}
    elif exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return error_response(
        request,
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
        headers=headers,
    )
