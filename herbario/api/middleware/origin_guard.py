"""
Origin allow-list and same-site enforcement (CSRF mitigation).

- Any request whose Origin header is outside the allow-list is refused.
- State-changing requests (anything but GET/HEAD/OPTIONS) must prove their
  origin: the Origin header if present, otherwise the origin of the Referer.
  Neither header, or an unparsable Referer, is refused as well.
"""

from typing import Callable, Iterable, Optional
from urllib.parse import urlsplit

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from herbario.api.errors import app_error_response
from herbario.config import get_settings
from herbario.errors import OriginNotAllowedError
from herbario.logging_config import get_logger

logger = get_logger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def origin_of(url: str) -> Optional[str]:
    """``scheme://host[:port]`` of a URL, or None if it cannot be parsed."""
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    origin = f"{parts.scheme}://{parts.hostname}"
    if port is not None:
        origin = f"{origin}:{port}"
    return origin


def check_request_origin(
    method: str,
    origin: Optional[str],
    referer: Optional[str],
    allowed: Iterable[str],
) -> Optional[str]:
    """
    Decide whether a request may proceed.

    Returns None when allowed, otherwise a short reason for the log.
    """
    allowed = set(allowed)
    if origin:
        if origin.rstrip("/") not in allowed:
            return "origin_not_allowed"
        return None

    if method.upper() in SAFE_METHODS:
        return None

    if not referer:
        return "origin_missing"
    referer_origin = origin_of(referer)
    if referer_origin is None:
        return "referer_unparsable"
    if referer_origin not in allowed:
        return "referer_not_allowed"
    return None


class OriginGuardMiddleware(BaseHTTPMiddleware):
    """Reject cross-site and unverifiable state-changing requests with 403."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        reason = check_request_origin(
            request.method,
            request.headers.get("origin"),
            request.headers.get("referer"),
            settings.allowed_origins_list,
        )
        if reason is not None:
            logger.warning(
                "Request origin rejected",
                extra={
                    "reason": reason,
                    "method": request.method,
                    "path": request.url.path,
                    "origin": request.headers.get("origin"),
                },
            )
            return app_error_response(request, OriginNotAllowedError(details={"reason": reason}))
        return await call_next(request)
