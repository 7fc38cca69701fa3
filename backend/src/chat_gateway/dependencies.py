"""Dependency injection container — wires provider adapters to the gateway.

FastAPI's ``Depends()`` system uses these factories to inject the chat
service into route handlers.
"""

from __future__ import annotations

from functools import lru_cache

import structlog

from chat_gateway.adapters.outbound.llm import ADAPTERS
from chat_gateway.application.services import ChatGatewayService
from chat_gateway.config import Settings, get_settings
from chat_gateway.ports.outbound import ChatProviderPort
from chat_gateway.shared.providers.gateway import ResilientChatGateway
from chat_gateway.shared.providers.registry import ProviderRegistry

logger = structlog.get_logger(__name__)


# ── Settings ─────────────────────────────────────────────────
@lru_cache(maxsize=1)
def get_cached_settings() -> Settings:
    return get_settings()


# ── Builders ─────────────────────────────────────────────────
def build_provider_adapters(settings: Settings) -> list[ChatProviderPort]:
    """Instantiate one adapter per configured provider that has a key."""
    adapters: list[ChatProviderPort] = []
    for name in settings.provider_order:
        adapter_cls = ADAPTERS.get(name)
        if adapter_cls is None:
            raise ValueError(f"Unknown provider in gateway_providers: {name!r}")

        api_key = getattr(settings, f"{name}_api_key", "")
        if not api_key.strip():
            logger.warning("provider_skipped_no_api_key", provider=name)
            continue

        kwargs = {
            "api_key": api_key,
            "model": getattr(settings, f"{name}_model"),
            "base_url": getattr(settings, f"{name}_base_url"),
            "timeout": settings.provider_timeout_seconds,
        }
        if name == "anthropic":
            kwargs["max_tokens"] = settings.anthropic_max_tokens
        adapters.append(adapter_cls(name, **kwargs))
    return adapters


def build_chat_service(
    settings: Settings,
    adapters: list[ChatProviderPort] | None = None,
) -> ChatGatewayService:
    if adapters is None:
        adapters = build_provider_adapters(settings)

    registry = ProviderRegistry(
        (a.as_provider() for a in adapters),
        cooldown_base_s=settings.provider_cooldown_base_seconds,
        cooldown_max_s=settings.provider_cooldown_max_seconds,
    )
    if not len(registry):
        logger.warning("gateway_started_without_providers")

    gateway = ResilientChatGateway(
        registry,
        first_token_timeout_s=settings.provider_first_token_timeout_seconds,
    )
    return ChatGatewayService(gateway)


# ── Singletons ───────────────────────────────────────────────
_adapters: list[ChatProviderPort] = []
_chat_service: ChatGatewayService | None = None


def init_chat_service(
    settings: Settings | None = None,
    adapters: list[ChatProviderPort] | None = None,
) -> ChatGatewayService:
    global _adapters, _chat_service
    s = settings or get_cached_settings()
    _adapters = adapters if adapters is not None else build_provider_adapters(s)
    _chat_service = build_chat_service(s, _adapters)
    return _chat_service


def get_chat_service() -> ChatGatewayService:
    if _chat_service is None:
        return init_chat_service()
    return _chat_service


async def close_adapters() -> None:
    global _adapters, _chat_service
    for adapter in _adapters:
        await adapter.close()
    _adapters = []
    _chat_service = None
