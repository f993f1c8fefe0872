"""
cardhub.observability.middleware

HTTP middleware for request-scoped logging context.

Responsibilities:
- Generate/propagate request IDs.
- Resolve the caller's network address (best-effort).
- Bind request metadata into structlog contextvars.
"""

from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp


def client_address(request: Request, *, trust_forwarded_for: bool = False) -> str | None:
    # Origin address is best-effort; absent when the transport does not expose a peer.
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is None:
        return None
    return request.client.host or None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Ensures every request has a request id
    - Binds request-scoped contextvars for structured logs
    """

    def __init__(self, app: ASGIApp, *, trust_forwarded_for: bool = False) -> None:
        super().__init__(app)
        self._trust_forwarded_for = trust_forwarded_for

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
            client_addr=client_address(request, trust_forwarded_for=self._trust_forwarded_for),
        )
        try:
            response: Response = await call_next(request)
        finally:
            # Avoid leaking context across requests under async concurrency.
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response


# --- Module Notes -----------------------------------------------------------
# Background audit tasks copy the context at spawn time, so their log lines keep the
# request id of the mutation that triggered them.
