"""
Request body size limit.

Raw ASGI middleware: a declared Content-Length above the limit is refused
before the app runs; bodies without a declared length are buffered up to the
limit and refused as soon as they exceed it.
"""

from typing import List

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from herbario.api.errors import app_error_response
from herbario.config import get_settings
from herbario.errors import PayloadTooLargeError
from herbario.logging_config import get_logger

logger = get_logger(__name__)


class BodySizeLimitMiddleware:
    def __init__(self, app: ASGIApp, max_body_bytes: int = 0):
        self.app = app
        self.max_body_bytes = max_body_bytes

    @property
    def limit(self) -> int:
        return self.max_body_bytes or get_settings().max_body_bytes

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        request = Request(scope, receive)
        logger.warning(
            "Request body too large",
            extra={"path": request.url.path, "size": size, "limit": self.limit},
        )
        response = app_error_response(
            request,
            PayloadTooLargeError(f"Request body exceeds {self.limit} bytes"),
        )
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        limit = self.limit
        headers = dict(scope.get("headers") or [])
        declared = headers.get(b"content-length")
        if declared is not None:
            try:
                size = int(declared)
            except ValueError:
                size = -1
            if size > limit:
                await self._reject(scope, receive, send, size)
                return
            if size >= 0:
                await self.app(scope, receive, send)
                return

        if headers.get(b"transfer-encoding") is None and declared is None:
            await self.app(scope, receive, send)
            return

        # No usable length: buffer the body (bounded) before handing it on
        messages: List[Message] = []
        received = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                messages.append(message)
                break
            received += len(message.get("body", b""))
            if received > limit:
                await self._reject(scope, receive, send, received)
                return
            messages.append(message)
            if not message.get("more_body", False):
                break

        async def replay() -> Message:
            if messages:
                return messages.pop(0)
            return await receive()

        await self.app(scope, replay, send)
