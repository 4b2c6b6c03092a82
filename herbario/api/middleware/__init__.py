"""
HTTP boundary middleware: correlation ids, transport policy, origin checks,
rate limits and body size limits.
"""

from herbario.api.middleware.body_limit import BodySizeLimitMiddleware
from herbario.api.middleware.correlation_id import CorrelationIdMiddleware
from herbario.api.middleware.origin_guard import OriginGuardMiddleware
from herbario.api.middleware.rate_limit import RateLimitMiddleware
from herbario.api.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "BodySizeLimitMiddleware",
    "CorrelationIdMiddleware",
    "OriginGuardMiddleware",
    "RateLimitMiddleware",
    "SecurityHeadersMiddleware",
]
