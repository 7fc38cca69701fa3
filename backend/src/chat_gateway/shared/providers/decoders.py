"""Chunk decoders — one per vendor stream format.

A decoder maps a single raw fragment to ``DecodedChunk(text, terminal)``.
Adapters parse the wire format (SSE, JSON lines); decoders only know the
shape of the parsed payloads.
"""

from __future__ import annotations

from typing import Any

from chat_gateway.domain.exceptions import ProviderStreamError
from chat_gateway.shared.providers.types import DecodedChunk

DONE_SENTINEL = "[DONE]"


class PlainTextDecoder:
    """Fragments are the text itself; exhausting the iterator ends the stream.

    Byte fragments arrive here already decoded by the normalizer.
    """

    requires_terminal = False

    def decode(self, chunk: Any) -> DecodedChunk:
        if chunk is None:
            return DecodedChunk()
        return DecodedChunk(text=str(chunk))


class OpenAIChatDecoder:
    """OpenAI-compatible ``chat.completion.chunk`` payloads."""

    requires_terminal = True

    def decode(self, chunk: Any) -> DecodedChunk:
        if chunk == DONE_SENTINEL:
            return DecodedChunk(terminal=True)
        if not isinstance(chunk, dict):
            return DecodedChunk()
        if "error" in chunk:
            raise ProviderStreamError("openai", _error_message(chunk["error"]))

        choices = chunk.get("choices") or []
        if not choices:
            return DecodedChunk()
        choice = choices[0]
        text = (choice.get("delta") or {}).get("content")
        return DecodedChunk(text=text, terminal=choice.get("finish_reason") is not None)


class AnthropicMessagesDecoder:
    """Anthropic Messages API stream events."""

    requires_terminal = True

    def decode(self, chunk: Any) -> DecodedChunk:
        if not isinstance(chunk, dict):
            return DecodedChunk()

        event_type = chunk.get("type")
        if event_type == "content_block_delta":
            delta = chunk.get("delta") or {}
            if delta.get("type") == "text_delta":
                return DecodedChunk(text=delta.get("text"))
            return DecodedChunk()
        if event_type == "message_stop":
            return DecodedChunk(terminal=True)
        if event_type == "error":
            raise ProviderStreamError("anthropic", _error_message(chunk.get("error")))
        # message_start, content_block_start/stop, message_delta, ping
        return DecodedChunk()


class GeminiDecoder:
    """Google Gemini ``streamGenerateContent`` responses."""

    requires_terminal = True

    def decode(self, chunk: Any) -> DecodedChunk:
        if not isinstance(chunk, dict):
            return DecodedChunk()
        if "error" in chunk:
            raise ProviderStreamError("google", _error_message(chunk["error"]))

        candidates = chunk.get("candidates") or []
        if not candidates:
            return DecodedChunk()
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        return DecodedChunk(
            text=text or None,
            terminal=candidate.get("finishReason") is not None,
        )


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error.get("type") or error)
    return str(error)


PLAIN_TEXT = PlainTextDecoder()
