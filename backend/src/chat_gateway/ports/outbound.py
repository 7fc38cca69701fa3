"""Outbound ports — interfaces that provider adapters must implement.

The core depends only on the capability contract (``ChatCapability``); this
port is the convenient class-based way for an adapter to supply one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterable, Sequence

from chat_gateway.domain.entities import ChatMessage
from chat_gateway.shared.providers.types import ChunkDecoder, Provider


class ChatProviderPort(ABC):
    """A streaming chat backend reachable over the network."""

    provider_id: str
    decoder: ChunkDecoder | None = None

    @abstractmethod
    async def stream_chat(self, messages: Sequence[ChatMessage]) -> AsyncIterable[Any]:
        """Start a completion and return its raw fragments.

        Must raise if the provider rejects the request before streaming.
        """

    @property
    def metadata(self) -> dict[str, Any]:
        return {}

    def as_provider(self) -> Provider:
        return Provider(
            provider_id=self.provider_id,
            chat=self.stream_chat,
            decoder=self.decoder,
            metadata=self.metadata,
        )

    async def close(self) -> None:
        """Release pooled connections."""
