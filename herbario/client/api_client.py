"""
Async HTTP client for the Herbario API.

Wraps httpx.AsyncClient with bearer-token handling through a SessionContext
and a short-lived in-memory cache for public GETs.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import httpx

from herbario.client.session import SessionContext
from herbario.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_TTL = 30.0  # seconds
DEFAULT_TIMEOUT = 10.0


@dataclass
class ApiResult:
    """Outcome of one API call. ``error`` is set for non-2xx responses."""

    status: int
    data: Any = None
    error: Optional[str] = None
    code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status < 300


def _parse_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return None
    if content_type.startswith("text/"):
        return response.text
    return response.content


class HerbarioClient:
    """
    Client for the Herbario REST API.

    Usage:
        async with HerbarioClient("https://api.herbario.example", SessionContext()) as api:
            await api.login("admin@herbario.example", "secret-pass")
            pending = await api.list_plants(status="pending")
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[SessionContext] = None,
        *,
        origin: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session or SessionContext()
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._cache: Dict[str, Tuple[float, ApiResult]] = {}

        url = httpx.URL(base_url)
        # Same-site checks on the server need an Origin on state-changing calls
        self.origin = origin or f"{url.scheme}://{url.netloc.decode('ascii')}"
        self._http = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
            headers={"Origin": self.origin},
        )

    async def __aenter__(self) -> "HerbarioClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def clear_cache(self) -> None:
        self._cache.clear()

    def _cache_key(self, path: str, params: Optional[Dict[str, Any]]) -> str:
        if not params:
            return path
        query = "&".join(f"{k}={params[k]}" for k in sorted(params))
        return f"{path}?{query}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        auth: bool = True,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        cache: bool = True,
    ) -> ApiResult:
        """
        Send a request.

        Public GETs (``auth=False``) are served from cache for ``cache_ttl``
        seconds; any other method clears the cache.
        """
        method = method.upper()
        params = {k: v for k, v in (params or {}).items() if v is not None}
        headers = {}
        token = self.session.token if auth else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        cacheable = method == "GET" and not auth and cache
        key = self._cache_key(path, params) if cacheable else None
        if key is not None and key in self._cache:
            stored_at, result = self._cache[key]
            if self._clock() - stored_at < self.cache_ttl:
                return result
            del self._cache[key]

        response = await self._http.request(
            method,
            path,
            params=params or None,
            json=json,
            data=data,
            files=files,
            headers=headers,
        )
        body = _parse_body(response)

        if not response.is_success:
            message = f"HTTP {response.status_code}"
            code = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("detail") or message
                code = body.get("code")
            logger.debug("API error", extra={"path": path, "status": response.status_code, "code": code})
            return ApiResult(status=response.status_code, error=message, code=code)

        result = ApiResult(status=response.status_code, data=body)
        if key is not None:
            self._cache[key] = (self._clock(), result)
        elif method != "GET":
            self._cache.clear()
        return result

    # Auth

    async def login(self, email: str, password: str) -> ApiResult:
        """Log in and keep the returned token in the session context."""
        result = await self.request(
            "POST",
            "/auth/login",
            auth=False,
            json={"email": email, "password": password},
        )
        if result.ok and isinstance(result.data, dict) and result.data.get("token"):
            self.session.set_token(result.data["token"])
        return result

    async def verify(self) -> ApiResult:
        return await self.request("GET", "/auth/verify")

    async def logout(self) -> ApiResult:
        """Discard the local token, then notify the server."""
        self.session.clear()
        try:
            return await self.request("POST", "/auth/logout", auth=False)
        except httpx.HTTPError as exc:
            logger.warning("Logout request failed: %s", exc)
            return ApiResult(status=0, error=str(exc))

    # Plants

    async def submit_plant(
        self,
        fields: Dict[str, Any],
        image: Optional[Tuple[str, bytes, str]] = None,
    ) -> ApiResult:
        """Submit a plant. ``image`` is (filename, bytes, mime type)."""
        if image is None:
            return await self.request("POST", "/plants/submissions", auth=False, json=fields)
        form = {k: str(v) for k, v in fields.items() if v is not None}
        return await self.request(
            "POST",
            "/plants/submissions",
            auth=False,
            data=form,
            files={"imagen": image},
        )

    async def list_plants(
        self,
        status: Optional[str] = None,
        q: Optional[str] = None,
        family: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> ApiResult:
        """List plants; only the accepted gallery is fetched without a token."""
        params = {"status": status, "q": q, "family": family, "page": page, "pageSize": page_size}
        return await self.request("GET", "/plants", auth=status != "accepted", params=params)

    async def counts(self) -> ApiResult:
        return await self.request("GET", "/plants/count")

    async def pending_count(self) -> ApiResult:
        return await self.request("GET", "/plants/count/pending", auth=False)

    async def image(self, plant_id: str) -> ApiResult:
        return await self.request("GET", f"/plants/{plant_id}/imagen", auth=False)

    async def accept(self, plant_id: str) -> ApiResult:
        return await self.request("PUT", f"/plants/{plant_id}/accept")

    async def reject(self, plant_id: str) -> ApiResult:
        return await self.request("PUT", f"/plants/{plant_id}/reject")

    async def update(self, plant_id: str, changes: Dict[str, Any]) -> ApiResult:
        return await self.request("PUT", f"/plants/{plant_id}", json=changes)

    async def delete(self, plant_id: str) -> ApiResult:
        return await self.request("DELETE", f"/plants/{plant_id}")
