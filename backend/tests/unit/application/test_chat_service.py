"""Unit tests for ChatGatewayService request validation."""

from __future__ import annotations

import pytest

from chat_gateway.application.services import ChatGatewayService
from chat_gateway.domain.entities import ChatMessage
from chat_gateway.domain.enums import MessageRole
from chat_gateway.domain.exceptions import InvalidRequestError
from chat_gateway.shared.providers.gateway import ResilientChatGateway
from chat_gateway.shared.providers.registry import ProviderRegistry

from conftest import FakeProvider


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider("alpha", ["Hi", "!"])


@pytest.fixture
def service(provider: FakeProvider) -> ChatGatewayService:
    return ChatGatewayService(ResilientChatGateway(ProviderRegistry([provider.as_provider()])))


class TestValidation:
    def test_empty_conversation(self, service: ChatGatewayService, provider: FakeProvider) -> None:
        with pytest.raises(InvalidRequestError):
            service.chat([])
        assert provider.calls == 0

    def test_unknown_role(self, service: ChatGatewayService, provider: FakeProvider) -> None:
        messages = [
            ChatMessage(role=MessageRole.USER, content="hi"),
            ChatMessage(role="tool", content="result"),
        ]
        with pytest.raises(InvalidRequestError) as exc_info:
            service.chat(messages)
        assert exc_info.value.index == 1
        assert exc_info.value.code == "INVALID_REQUEST"
        assert provider.calls == 0

    @pytest.mark.parametrize("content", ["", "   \n"])
    def test_empty_content(self, service: ChatGatewayService, content: str) -> None:
        with pytest.raises(InvalidRequestError):
            service.chat([ChatMessage(role=MessageRole.USER, content=content)])

    def test_non_message_items(self, service: ChatGatewayService) -> None:
        with pytest.raises(InvalidRequestError):
            service.chat([{"role": "user", "content": "hi"}])  # type: ignore[list-item]

    def test_plain_string_role_accepted(self, service: ChatGatewayService) -> None:
        stream = service.chat([ChatMessage(role="user", content="hi")])
        assert stream.closed is False

    def test_from_dict_parses_role(self) -> None:
        message = ChatMessage.from_dict({"role": "assistant", "content": "ok"})
        assert message.role is MessageRole.ASSISTANT
        assert message.to_dict() == {"role": "assistant", "content": "ok"}


class TestDelegation:
    @pytest.mark.asyncio
    async def test_streams_through_gateway(
        self, service: ChatGatewayService, provider: FakeProvider
    ) -> None:
        messages = [
            ChatMessage(role=MessageRole.SYSTEM, content="be brief"),
            ChatMessage(role=MessageRole.USER, content="hello"),
            ChatMessage(role=MessageRole.ASSISTANT, content="hi"),
            ChatMessage(role=MessageRole.USER, content="again"),
        ]
        tokens = await service.chat(messages).collect()
        assert [t.text for t in tokens] == ["Hi", "!"]
        # Conversation order is preserved end-to-end
        assert provider.received == [tuple(messages)]

    def test_health_passthrough(self, service: ChatGatewayService) -> None:
        assert [h.provider_id for h in service.get_all_health()] == ["alpha"]
        assert service.reset_provider("alpha") is True
