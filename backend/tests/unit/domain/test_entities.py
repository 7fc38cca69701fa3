"""Unit tests for domain entities and the gateway error hierarchy."""

from __future__ import annotations

import dataclasses

import pytest

from chat_gateway.domain.entities import ChatMessage, Token
from chat_gateway.domain.enums import MessageRole
from chat_gateway.domain.exceptions import (
    AllProvidersExhaustedError,
    GatewayError,
    ProviderCallError,
    StreamInterruptedError,
)


class TestChatMessage:
    def test_frozen(self) -> None:
        msg = ChatMessage(role=MessageRole.USER, content="hi")
        with pytest.raises(dataclasses.FrozenInstanceError):
            msg.content = "changed"  # type: ignore[misc]

    def test_unknown_role_kept_as_string(self) -> None:
        msg = ChatMessage.from_dict({"role": "tool", "content": "x"})
        assert msg.role == "tool"
        assert msg.to_dict() == {"role": "tool", "content": "x"}

    def test_role_enum_compares_to_string(self) -> None:
        assert MessageRole.SYSTEM == "system"


class TestToken:
    def test_equality(self) -> None:
        assert Token(0, "a") == Token(sequence=0, text="a")
        assert Token(0, "a") != Token(1, "a")


class TestExceptions:
    def test_all_errors_share_base(self) -> None:
        err = StreamInterruptedError("alpha", tokens_delivered=3)
        assert isinstance(err, GatewayError)
        assert err.code == "STREAM_INTERRUPTED"
        assert "3 token(s)" in err.message
        assert "terminal marker" in err.message

    def test_interruption_mentions_cause(self) -> None:
        err = StreamInterruptedError("alpha", tokens_delivered=1, cause=ConnectionError("reset"))
        assert "ConnectionError: reset" in str(err)

    def test_exhausted_collects_per_provider_errors(self) -> None:
        err = AllProvidersExhaustedError(
            [
                ProviderCallError("alpha", RuntimeError("429")),
                ProviderCallError("beta", TimeoutError("slow")),
            ]
        )
        assert err.code == "ALL_PROVIDERS_EXHAUSTED"
        assert err.errors == {
            "alpha": "RuntimeError: 429",
            "beta": "TimeoutError: slow",
        }
        assert "alpha, beta" in err.message
