"""
Rate limiting per client IP.

A global budget applies to every request; login, submission and admin
routes additionally draw from tighter per-route budgets.
"""

import math
import re
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from herbario.api.deps import get_client_ip
from herbario.api.errors import app_error_response
from herbario.config import Settings, get_settings
from herbario.errors import RateLimitExceededError
from herbario.logging_config import get_logger

logger = get_logger(__name__)


class InMemoryRateLimitStore:
    """Fixed-window in-memory store. Key -> (count, window_start_ts, window_seconds)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._data: dict[str, Tuple[int, float, int]] = {}
        self._clock = clock
        self._last_cleanup = clock()

    def _key(self, scope: str, identifier: str) -> str:
        return f"{scope}:{identifier}"

    def check_and_incr(
        self,
        scope: str,
        identifier: str,
        limit: int,
        window_seconds: int,
    ) -> bool:
        """Returns True if under limit (and increments). False if over limit (no increment)."""
        key = self._key(scope, identifier)
        now = self._clock()
        entry = self._data.get(key)
        if entry is None or now - entry[1] >= entry[2]:
            self._data[key] = (1, now, window_seconds)
            return True
        count, start, window = entry
        if count >= limit:
            return False
        self._data[key] = (count + 1, start, window)
        return True

    def retry_after(self, scope: str, identifier: str) -> int:
        """Seconds until the current window for this key resets."""
        entry = self._data.get(self._key(scope, identifier))
        if entry is None:
            return 0
        _, start, window = entry
        return max(1, math.ceil(window - (self._clock() - start)))

    def cleanup_old(self, min_interval_seconds: int = 60) -> None:
        """Drop entries whose window has passed, at most once per interval."""
        now = self._clock()
        if now - self._last_cleanup < min_interval_seconds:
            return
        self._last_cleanup = now
        expired = [k for k, (_, start, window) in self._data.items() if now - start >= window]
        for k in expired:
            self._data.pop(k, None)

    def reset(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


# Module-level store (single process)
_store: Optional[InMemoryRateLimitStore] = None


def get_store() -> InMemoryRateLimitStore:
    global _store
    if _store is None:
        _store = InMemoryRateLimitStore()
    return _store


@dataclass(frozen=True)
class RateLimitRule:
    scope: str
    method: str
    path: re.Pattern
    limit: int
    window_seconds: int

    def matches(self, method: str, path: str) -> bool:
        return method == self.method and bool(self.path.fullmatch(path))


_PLANT_ID = r"/plants/[^/]+"


def route_rules(settings: Settings) -> List[RateLimitRule]:
    """Tighter budgets for sensitive routes."""
    login = (settings.rate_limit_login, settings.rate_limit_login_window_seconds)
    submission = (settings.rate_limit_submission, settings.rate_limit_submission_window_seconds)
    admin = (settings.rate_limit_admin, settings.rate_limit_admin_window_seconds)
    return [
        RateLimitRule("login", "POST", re.compile(r"/auth/login/?"), *login),
        RateLimitRule("submission", "POST", re.compile(r"/plants/submissions/?"), *submission),
        RateLimitRule("admin", "GET", re.compile(r"/plants/count/?"), *admin),
        RateLimitRule("admin", "PUT", re.compile(_PLANT_ID + r"/(accept|reject)/?"), *admin),
        RateLimitRule("admin", "PUT", re.compile(_PLANT_ID + r"/?"), *admin),
        RateLimitRule("admin", "DELETE", re.compile(_PLANT_ID + r"/?"), *admin),
    ]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limit by scope, keyed on client IP:
    - global: every request
    - login / submission / admin: matching routes only
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        if not settings.rate_limit_enabled:
            return await call_next(request)

        store = get_store()
        store.cleanup_old()

        identifier = get_client_ip(request)
        checks = [("global", settings.rate_limit_global, settings.rate_limit_global_window_seconds)]
        method = request.method.upper()
        path = request.url.path or ""
        for rule in route_rules(settings):
            if rule.matches(method, path):
                checks.append((rule.scope, rule.limit, rule.window_seconds))
                break

        for scope, limit, window in checks:
            if not store.check_and_incr(scope, identifier, limit, window):
                retry_after = store.retry_after(scope, identifier)
                logger.warning(
                    "Rate limit exceeded",
                    extra={"scope": scope, "client_ip": identifier, "path": path},
                )
                return app_error_response(request, RateLimitExceededError(retry_after))

        return await call_next(request)
