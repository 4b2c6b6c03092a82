"""
Transport and embedding policy.

Every response gets a restrictive content/embedding header set. In
production plain-HTTP requests are redirected to HTTPS and responses carry
Strict-Transport-Security.
"""

from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from herbario.config import Settings, get_settings

CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "base-uri 'self'",
    "img-src 'self' data: blob:",
    "object-src 'none'",
    "frame-ancestors 'self'",
    "form-action 'self'",
])


def security_headers(settings: Settings) -> Dict[str, str]:
    headers = {
        "Content-Security-Policy": CONTENT_SECURITY_POLICY,
        "Referrer-Policy": "no-referrer",
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-origin",
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
    }
    if settings.is_production:
        headers["Strict-Transport-Security"] = (
            f"max-age={settings.hsts_max_age_seconds}; includeSubDomains"
        )
    return headers


def is_secure(request: Request) -> bool:
    """True for https, directly or behind a TLS-terminating proxy."""
    forwarded_proto = request.headers.get("x-forwarded-proto", "")
    return request.url.scheme == "https" or forwarded_proto.split(",")[0].strip() == "https"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Apply HTTPS redirect (production) and security headers to every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()

        if settings.is_production and not is_secure(request):
            response: Response = RedirectResponse(
                str(request.url.replace(scheme="https")),
                status_code=301,
            )
        else:
            response = await call_next(request)

        for name, value in security_headers(settings).items():
            response.headers.setdefault(name, value)
        return response
