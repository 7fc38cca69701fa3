"""REST routers — chat streaming, health, metrics and provider admin."""

from __future__ import annotations

from typing import AsyncIterator

import orjson
import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from chat_gateway.application.dtos import (
    ChatRequest,
    ErrorResponse,
    HealthResponse,
    ProviderHealthResponse,
    StreamErrorOut,
    TokenOut,
)
from chat_gateway.application.services import ChatGatewayService
from chat_gateway.dependencies import get_cached_settings, get_chat_service
from chat_gateway.domain.entities import Token
from chat_gateway.domain.exceptions import StreamInterruptedError
from chat_gateway.shared.providers.stream import TokenStream

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════
#  Health
# ═══════════════════════════════════════════════════════════════
health_router = APIRouter(tags=["Health"])


@health_router.get("/health", response_model=HealthResponse)
async def health_check(
    service: ChatGatewayService = Depends(get_chat_service),
) -> HealthResponse:
    settings = get_cached_settings()
    providers = {
        h.provider_id: "healthy" if h.healthy else "cooling_down"
        for h in service.get_all_health()
    }
    overall = "ok" if any(v == "healthy" for v in providers.values()) else "degraded"
    return HealthResponse(
        status=overall,
        environment=settings.app_env.value,
        providers=providers,
    )


@health_router.get("/metrics")
async def prometheus_metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# ═══════════════════════════════════════════════════════════════
#  Chat
# ═══════════════════════════════════════════════════════════════
chat_router = APIRouter(tags=["Chat"])


def _frame(payload: dict) -> bytes:  # type: ignore[type-arg]
    return orjson.dumps(payload) + b"\n"


def _token_line(token: Token) -> bytes:
    return _frame(TokenOut(sequence=token.sequence, text=token.text).model_dump())


async def _ndjson(stream: TokenStream, first: Token | None) -> AsyncIterator[bytes]:
    try:
        if first is None:
            return
        yield _token_line(first)
        async for token in stream:
            yield _token_line(token)
    except StreamInterruptedError as exc:
        error = StreamErrorOut(
            code=exc.code,
            message=exc.message,
            tokens_delivered=exc.tokens_delivered,
        )
        yield _frame({"error": error.model_dump()})
    finally:
        await stream.aclose()


@chat_router.post(
    "/chat",
    responses={
        200: {"content": {"application/x-ndjson": {}}, "description": "NDJSON token stream"},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def chat(
    body: ChatRequest,
    service: ChatGatewayService = Depends(get_chat_service),
) -> StreamingResponse:
    """Stream the reply as NDJSON ``{"sequence", "text"}`` lines.

    The first token is pulled before the response starts, so failures
    before any output become proper HTTP error statuses.
    """
    stream = service.chat([m.to_domain() for m in body.messages])
    first = await anext(stream, None)
    headers = {"X-Provider-Id": stream.provider_id} if stream.provider_id else {}
    return StreamingResponse(
        _ndjson(stream, first),
        media_type="application/x-ndjson",
        headers=headers,
    )


# ═══════════════════════════════════════════════════════════════
#  Provider Health (Admin)
# ═══════════════════════════════════════════════════════════════
providers_router = APIRouter(prefix="/providers", tags=["Provider Health"])


@providers_router.get("/health", response_model=list[ProviderHealthResponse])
async def provider_health(
    service: ChatGatewayService = Depends(get_chat_service),
) -> list[ProviderHealthResponse]:
    """Get health snapshots for all configured providers, in rotation order."""
    return [
        ProviderHealthResponse(
            provider_id=h.provider_id,
            healthy=h.healthy,
            consecutive_failures=h.consecutive_failures,
            cooldown_remaining_s=h.cooldown_remaining_s,
            total_requests=h.total_requests,
            total_successes=h.total_successes,
            total_failures=h.total_failures,
            total_interruptions=h.total_interruptions,
            last_error=h.last_error,
        )
        for h in service.get_all_health()
    ]


@providers_router.post("/{provider_id}/reset")
async def reset_provider(
    provider_id: str,
    service: ChatGatewayService = Depends(get_chat_service),
) -> dict[str, str]:
    """Admin: clear failure history and cooldown for a provider."""
    if not service.reset_provider(provider_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown provider {provider_id!r}",
        )
    return {"status": "reset", "provider_id": provider_id}
