"""Streaming LLM provider adapters over ``httpx``.

Each adapter is a pure capability: translate the conversation, open a
streaming request, and yield the parsed SSE payloads.  Rotation, failover
and health tracking live in the resilient gateway, never here.

A non-2xx status is raised from ``stream_chat`` itself (before any output),
so the gateway can fail over; everything after that is yielded lazily and
the HTTP response is closed when the stream is closed.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Sequence

import httpx
import orjson
import structlog

from chat_gateway.domain.entities import ChatMessage
from chat_gateway.domain.enums import MessageRole
from chat_gateway.ports.outbound import ChatProviderPort
from chat_gateway.shared.providers.decoders import (
    DONE_SENTINEL,
    AnthropicMessagesDecoder,
    GeminiDecoder,
    OpenAIChatDecoder,
)

logger = structlog.get_logger(__name__)


def _role(message: ChatMessage) -> str:
    return message.role.value if isinstance(message.role, MessageRole) else str(message.role)


class _SSEChatAdapter(ChatProviderPort):
    """Shared plumbing: one pooled client, SSE parsing, status checks."""

    def __init__(
        self,
        provider_id: str,
        *,
        api_key: str,
        model: str,
        base_url: str,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.provider_id = provider_id
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def metadata(self) -> dict[str, Any]:
        return {"model": self._model, "base_url": self._base_url}

    async def _open(self, request: httpx.Request) -> AsyncIterator[Any]:
        response = await self._client.send(request, stream=True)
        if response.is_error:
            await response.aread()
            await response.aclose()
            logger.warning(
                "provider_http_error",
                provider=self.provider_id,
                status=response.status_code,
            )
            response.raise_for_status()
        return self._iter_events(response)

    async def _iter_events(self, response: httpx.Response) -> AsyncIterator[Any]:
        try:
            async for line in response.aiter_lines():
                if not line.startswith("data:"):
                    continue
                data = line[len("data:"):].strip()
                if not data:
                    continue
                if data == DONE_SENTINEL:
                    yield DONE_SENTINEL
                    continue
                yield orjson.loads(data)
        finally:
            await response.aclose()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class OpenAIChatAdapter(_SSEChatAdapter):
    """OpenAI (or any OpenAI-compatible) ``/chat/completions`` streaming."""

    decoder = OpenAIChatDecoder()

    def __init__(
        self,
        provider_id: str = "openai",
        *,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str = "https://api.openai.com/v1",
        **kwargs: Any,
    ) -> None:
        super().__init__(provider_id, api_key=api_key, model=model, base_url=base_url, **kwargs)

    async def stream_chat(self, messages: Sequence[ChatMessage]) -> AsyncIterator[Any]:
        request = self._client.build_request(
            "POST",
            f"{self._base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self._model,
                "stream": True,
                "messages": [{"role": _role(m), "content": m.content} for m in messages],
            },
        )
        return await self._open(request)


class AnthropicChatAdapter(_SSEChatAdapter):
    """Anthropic Messages API streaming; system messages go to ``system``."""

    decoder = AnthropicMessagesDecoder()

    def __init__(
        self,
        provider_id: str = "anthropic",
        *,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        base_url: str = "https://api.anthropic.com/v1",
        max_tokens: int = 4096,
        **kwargs: Any,
    ) -> None:
        super().__init__(provider_id, api_key=api_key, model=model, base_url=base_url, **kwargs)
        self._max_tokens = max_tokens

    async def stream_chat(self, messages: Sequence[ChatMessage]) -> AsyncIterator[Any]:
        system = "\n\n".join(m.content for m in messages if _role(m) == MessageRole.SYSTEM.value)
        body: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "stream": True,
            "messages": [
                {"role": _role(m), "content": m.content}
                for m in messages
                if _role(m) != MessageRole.SYSTEM.value
            ],
        }
        if system:
            body["system"] = system
        request = self._client.build_request(
            "POST",
            f"{self._base_url}/messages",
            headers={
                "x-api-key": self._api_key,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
            json=body,
        )
        return await self._open(request)


class GeminiChatAdapter(_SSEChatAdapter):
    """Google Gemini ``streamGenerateContent`` with ``alt=sse``."""

    decoder = GeminiDecoder()

    def __init__(
        self,
        provider_id: str = "google",
        *,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        **kwargs: Any,
    ) -> None:
        super().__init__(provider_id, api_key=api_key, model=model, base_url=base_url, **kwargs)

    async def stream_chat(self, messages: Sequence[ChatMessage]) -> AsyncIterator[Any]:
        system = [
            {"text": m.content} for m in messages if _role(m) == MessageRole.SYSTEM.value
        ]
        contents = [
            {
                "role": "model" if _role(m) == MessageRole.ASSISTANT.value else "user",
                "parts": [{"text": m.content}],
            }
            for m in messages
            if _role(m) != MessageRole.SYSTEM.value
        ]
        body: dict[str, Any] = {"contents": contents}
        if system:
            body["system_instruction"] = {"parts": system}
        request = self._client.build_request(
            "POST",
            f"{self._base_url}/models/{self._model}:streamGenerateContent",
            params={"alt": "sse", "key": self._api_key},
            headers={"Content-Type": "application/json"},
            json=body,
        )
        return await self._open(request)


ADAPTERS: dict[str, type[_SSEChatAdapter]] = {
    "openai": OpenAIChatAdapter,
    "anthropic": AnthropicChatAdapter,
    "google": GeminiChatAdapter,
}
