"""Chat gateway service — the single entry point for the HTTP layer.

Validates the conversation before any provider is touched, then hands it
to the resilient gateway, which owns selection and failover.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from chat_gateway.domain.entities import ChatMessage
from chat_gateway.domain.enums import MessageRole
from chat_gateway.domain.exceptions import InvalidRequestError
from chat_gateway.shared.providers.gateway import ResilientChatGateway
from chat_gateway.shared.providers.stream import TokenStream
from chat_gateway.shared.providers.types import ProviderHealth

logger = structlog.get_logger(__name__)

_ROLES = {r.value for r in MessageRole}


class ChatGatewayService:
    """Thin facade over ``ResilientChatGateway``."""

    def __init__(self, gateway: ResilientChatGateway) -> None:
        self._gateway = gateway

    @property
    def gateway(self) -> ResilientChatGateway:
        """Expose gateway for health inspection / admin reset."""
        return self._gateway

    def chat(self, messages: Sequence[ChatMessage]) -> TokenStream:
        """Validate ``messages`` eagerly and return the lazy token stream.

        Raises:
            InvalidRequestError: empty conversation, unknown role, or
                empty content.
        """
        validate_messages(messages)
        return self._gateway.chat(messages)

    def get_all_health(self) -> list[ProviderHealth]:
        return self._gateway.get_all_health()

    def reset_provider(self, provider_id: str) -> bool:
        return self._gateway.reset_provider(provider_id)


def validate_messages(messages: Sequence[ChatMessage]) -> None:
    if messages is None or isinstance(messages, (str, bytes)):
        raise InvalidRequestError("messages must be a sequence of chat messages")
    if len(messages) == 0:
        raise InvalidRequestError("messages must not be empty")

    for index, message in enumerate(messages):
        if not isinstance(message, ChatMessage):
            raise InvalidRequestError(
                f"messages[{index}] is not a chat message", index=index
            )
        role = message.role.value if isinstance(message.role, MessageRole) else message.role
        if not isinstance(role, str) or role not in _ROLES:
            raise InvalidRequestError(
                f"messages[{index}] has unknown role {message.role!r}", index=index
            )
        if not isinstance(message.content, str) or not message.content.strip():
            raise InvalidRequestError(
                f"messages[{index}] has empty content", index=index
            )
