"""ASGI middleware stack — request ID, access logging, HTTP metrics.

The chat endpoint streams its body, so these are plain ASGI middlewares
that watch the ``send`` channel: an exchange is timed until the last body
chunk goes out, and time-to-first-byte (response start) is kept separately.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from chat_gateway.shared.observability.metrics import (
    HTTP_FIRST_BYTE_DURATION,
    HTTP_REQUEST_DURATION,
    HTTP_REQUESTS_TOTAL,
)

logger = structlog.get_logger(__name__)


class RequestIdMiddleware:
    """Injects a unique X-Request-ID header into every request/response."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id)

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)["X-Request-ID"] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")


@dataclass
class Exchange:
    """What one HTTP exchange looked like from the server side."""

    method: str
    endpoint: str
    status: int = 0
    first_byte_s: float | None = None
    duration_s: float = 0.0
    bytes_sent: int = 0
    completed: bool = False


def _endpoint(scope: Scope) -> str:
    # Route template keeps path parameters out of metric labels
    route = scope.get("route")
    return getattr(route, "path", None) or scope["path"]


class _ExchangeObserver:
    """Base for middlewares that act once the response body is finished."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.monotonic()
        exchange = Exchange(method=scope["method"], endpoint=scope["path"])

        async def observing_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                exchange.status = message["status"]
                exchange.first_byte_s = time.monotonic() - start
            elif message["type"] == "http.response.body":
                exchange.bytes_sent += len(message.get("body", b""))
                if not message.get("more_body", False):
                    exchange.completed = True
            await send(message)

        try:
            await self.app(scope, receive, observing_send)
        except Exception:
            exchange.status = exchange.status or 500
            raise
        finally:
            exchange.duration_s = time.monotonic() - start
            exchange.endpoint = _endpoint(scope)
            self.observe(scope, exchange)

    def observe(self, scope: Scope, exchange: Exchange) -> None:
        raise NotImplementedError


class LoggingMiddleware(_ExchangeObserver):
    """Logs every request once its body has been fully sent (or abandoned)."""

    def observe(self, scope: Scope, exchange: Exchange) -> None:
        client = scope.get("client")
        logger.info(
            "http_request",
            method=exchange.method,
            path=scope["path"],
            status=exchange.status,
            duration_ms=round(exchange.duration_s * 1000, 2),
            first_byte_ms=(
                round(exchange.first_byte_s * 1000, 2)
                if exchange.first_byte_s is not None
                else None
            ),
            bytes=exchange.bytes_sent,
            completed=exchange.completed,
            client=client[0] if client else "unknown",
        )


class MetricsMiddleware(_ExchangeObserver):
    """Collects Prometheus HTTP metrics over the full response lifetime."""

    def observe(self, scope: Scope, exchange: Exchange) -> None:
        HTTP_REQUESTS_TOTAL.labels(
            method=exchange.method,
            endpoint=exchange.endpoint,
            status_code=exchange.status,
        ).inc()
        HTTP_REQUEST_DURATION.labels(
            method=exchange.method,
            endpoint=exchange.endpoint,
        ).observe(exchange.duration_s)
        if exchange.first_byte_s is not None:
            HTTP_FIRST_BYTE_DURATION.labels(
                method=exchange.method,
                endpoint=exchange.endpoint,
            ).observe(exchange.first_byte_s)
