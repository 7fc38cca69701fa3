"""Core types for the provider selection and failover core."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Awaitable, Callable, Protocol, Sequence, runtime_checkable

from chat_gateway.domain.entities import ChatMessage

# A provider capability: given the ordered conversation, asynchronously
# produce a lazy sequence of raw, provider-shaped response fragments.
ChatCapability = Callable[[Sequence[ChatMessage]], Awaitable[AsyncIterable[Any]]]


@dataclass(frozen=True, slots=True)
class DecodedChunk:
    """Text carried by one raw fragment, and whether it ends the stream."""

    text: str | None = None
    terminal: bool = False


@runtime_checkable
class ChunkDecoder(Protocol):
    """Interprets one provider's raw stream fragments."""

    requires_terminal: bool

    def decode(self, chunk: Any) -> DecodedChunk: ...


@dataclass(frozen=True)
class Provider:
    """A registered inference backend.

    Attributes:
        provider_id: Unique identifier (e.g. "openai", "anthropic").
        chat:        The capability invoked for every attempt.
        decoder:     Fragment interpreter; ``None`` means plain text.
        metadata:    Arbitrary extra info (model name, base URL, etc.).
    """

    provider_id: str
    chat: ChatCapability
    decoder: ChunkDecoder | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderState:
    """Mutable health bookkeeping for one provider.

    Owned by a ``ProviderHealthTracker``; anything handed out is a copy.
    """

    provider_id: str
    healthy: bool = True
    consecutive_failures: int = 0
    cooldown_until: float | None = None
    last_failure_at: float | None = None
    last_error: str | None = None

    def is_available(self, now: float) -> bool:
        """Healthy, or unhealthy with an expired cooldown."""
        if self.healthy:
            return True
        return self.cooldown_until is not None and now >= self.cooldown_until


@dataclass
class ProviderHealth:
    """Read-only snapshot of a provider's current health."""

    provider_id: str
    healthy: bool = True
    consecutive_failures: int = 0
    cooldown_remaining_s: float = 0.0
    total_requests: int = 0
    total_successes: int = 0
    total_failures: int = 0
    total_interruptions: int = 0
    last_error: str | None = None
    last_failure_at: float | None = None
