"""Tests for the httpx streaming provider adapters (no network)."""

from __future__ import annotations

import json

import httpx
import pytest

from chat_gateway.adapters.outbound.llm import (
    AnthropicChatAdapter,
    GeminiChatAdapter,
    OpenAIChatAdapter,
)
from chat_gateway.domain.entities import ChatMessage
from chat_gateway.domain.enums import MessageRole
from chat_gateway.shared.providers.gateway import ResilientChatGateway
from chat_gateway.shared.providers.normalizer import normalize
from chat_gateway.shared.providers.registry import ProviderRegistry


def _sse(*events: object, done: bool = False) -> bytes:
    lines = []
    for event in events:
        lines.append(f"data: {json.dumps(event)}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


class _Recorder:
    def __init__(self, status: int, body: bytes) -> None:
        self.status = status
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            self.status,
            content=self.body,
            headers={"content-type": "text/event-stream"},
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def messages() -> list[ChatMessage]:
    return [
        ChatMessage(role=MessageRole.SYSTEM, content="Be brief."),
        ChatMessage(role=MessageRole.USER, content="Hi"),
        ChatMessage(role=MessageRole.ASSISTANT, content="Hello"),
        ChatMessage(role=MessageRole.USER, content="Bye"),
    ]


class TestOpenAIChatAdapter:
    @pytest.mark.asyncio
    async def test_streams_deltas(self, messages: list[ChatMessage]) -> None:
        recorder = _Recorder(
            200,
            _sse(
                {"choices": [{"delta": {"role": "assistant"}, "finish_reason": None}]},
                {"choices": [{"delta": {"content": "Good"}, "finish_reason": None}]},
                {"choices": [{"delta": {"content": "bye"}, "finish_reason": "stop"}]},
                done=True,
            ),
        )
        adapter = OpenAIChatAdapter(api_key="sk-test", client=recorder.client())

        raw = await adapter.stream_chat(messages)
        tokens = [t async for t in normalize(raw, adapter.decoder)]

        assert [t.text for t in tokens] == ["Good", "bye"]
        body = json.loads(recorder.requests[0].content)
        assert body["stream"] is True
        assert [m["role"] for m in body["messages"]] == ["system", "user", "assistant", "user"]
        assert recorder.requests[0].headers["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_http_error_raised_before_streaming(self, messages: list[ChatMessage]) -> None:
        recorder = _Recorder(429, b'{"error": {"message": "rate limited"}}')
        adapter = OpenAIChatAdapter(api_key="sk-test", client=recorder.client())

        with pytest.raises(httpx.HTTPStatusError):
            await adapter.stream_chat(messages)


class TestAnthropicChatAdapter:
    @pytest.mark.asyncio
    async def test_system_prompt_hoisted(self, messages: list[ChatMessage]) -> None:
        recorder = _Recorder(
            200,
            _sse(
                {"type": "message_start", "message": {"id": "msg_1"}},
                {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
                {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "Ciao"}},
                {"type": "content_block_stop", "index": 0},
                {"type": "message_stop"},
            ),
        )
        adapter = AnthropicChatAdapter(api_key="ak-test", client=recorder.client())

        raw = await adapter.stream_chat(messages)
        tokens = [t async for t in normalize(raw, adapter.decoder)]

        assert [t.text for t in tokens] == ["Ciao"]
        body = json.loads(recorder.requests[0].content)
        assert body["system"] == "Be brief."
        assert [m["role"] for m in body["messages"]] == ["user", "assistant", "user"]
        assert recorder.requests[0].headers["x-api-key"] == "ak-test"


class TestGeminiChatAdapter:
    @pytest.mark.asyncio
    async def test_roles_translated(self, messages: list[ChatMessage]) -> None:
        recorder = _Recorder(
            200,
            _sse(
                {"candidates": [{"content": {"parts": [{"text": "Adi"}]}}]},
                {"candidates": [{"content": {"parts": [{"text": "os"}]}, "finishReason": "STOP"}]},
            ),
        )
        adapter = GeminiChatAdapter(api_key="g-test", client=recorder.client())

        raw = await adapter.stream_chat(messages)
        tokens = [t async for t in normalize(raw, adapter.decoder)]

        assert "".join(t.text for t in tokens) == "Adios"
        request = recorder.requests[0]
        assert request.url.params["alt"] == "sse"
        body = json.loads(request.content)
        assert body["system_instruction"] == {"parts": [{"text": "Be brief."}]}
        assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]


class TestAdaptersBehindGateway:
    @pytest.mark.asyncio
    async def test_http_error_fails_over(self, messages: list[ChatMessage]) -> None:
        failing = OpenAIChatAdapter(
            "openai", api_key="sk", client=_Recorder(503, b"unavailable").client()
        )
        working = AnthropicChatAdapter(
            "anthropic",
            api_key="ak",
            client=_Recorder(
                200,
                _sse(
                    {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "ok"}},
                    {"type": "message_stop"},
                ),
            ).client(),
        )
        registry = ProviderRegistry([failing.as_provider(), working.as_provider()])
        gateway = ResilientChatGateway(registry)

        stream = gateway.chat(messages)
        tokens = await stream.collect()

        assert [t.text for t in tokens] == ["ok"]
        assert stream.provider_id == "anthropic"
        assert "HTTPStatusError" in (registry.state_of("openai").last_error or "")
