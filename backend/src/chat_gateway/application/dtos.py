"""Data Transfer Objects — Pydantic models for API boundaries.

Roles are accepted as plain strings here; the chat service owns message
validation so that every malformed conversation fails the same way.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from chat_gateway.domain.entities import ChatMessage


# ═══════════════════════════════════════════════════════════════
#  Common
# ═══════════════════════════════════════════════════════════════
class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict | None = None  # type: ignore[type-arg]


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    environment: str = "development"
    providers: dict[str, str] = Field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════
#  Chat
# ═══════════════════════════════════════════════════════════════
class ChatMessageIn(BaseModel):
    role: str
    content: str

    def to_domain(self) -> ChatMessage:
        return ChatMessage.from_dict(self.model_dump())


class ChatRequest(BaseModel):
    messages: list[ChatMessageIn]


class TokenOut(BaseModel):
    """One NDJSON line of a chat reply."""

    sequence: int
    text: str


class StreamErrorOut(BaseModel):
    """Final NDJSON line when a stream breaks after output was sent."""

    code: str
    message: str
    tokens_delivered: int


# ═══════════════════════════════════════════════════════════════
#  Provider health
# ═══════════════════════════════════════════════════════════════
class ProviderHealthResponse(BaseModel):
    provider_id: str
    healthy: bool
    consecutive_failures: int
    cooldown_remaining_s: float
    total_requests: int
    total_successes: int
    total_failures: int
    total_interruptions: int
    last_error: str | None = None
