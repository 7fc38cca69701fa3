"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Iterable

import pytest

from chat_gateway.domain.entities import ChatMessage
from chat_gateway.domain.enums import MessageRole
from chat_gateway.shared.providers.types import ChunkDecoder, Provider


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """Scriptable provider capability.

    ``fail_before`` is raised from the capability call itself; ``fail_after``
    raises once that many fragments have been yielded.
    """

    def __init__(
        self,
        provider_id: str,
        fragments: Iterable[Any] = ("Hello", " world"),
        *,
        fail_before: BaseException | None = None,
        fail_after: int | None = None,
        first_delay: float = 0.0,
        hang_after: int | None = None,
        decoder: ChunkDecoder | None = None,
    ) -> None:
        self.provider_id = provider_id
        self.fragments = list(fragments)
        self.fail_before = fail_before
        self.fail_after = fail_after
        self.first_delay = first_delay
        self.hang_after = hang_after
        self.decoder = decoder
        self.calls = 0
        self.closed = 0
        self.received: list[tuple[ChatMessage, ...]] = []

    async def chat(self, messages: Any) -> AsyncIterator[Any]:
        self.calls += 1
        self.received.append(tuple(messages))
        await asyncio.sleep(0)
        if self.fail_before is not None:
            raise self.fail_before
        return self._stream()

    async def _stream(self) -> AsyncIterator[Any]:
        try:
            if self.first_delay:
                await asyncio.sleep(self.first_delay)
            for idx, fragment in enumerate(self.fragments):
                if self.fail_after is not None and idx == self.fail_after:
                    raise ConnectionError(f"{self.provider_id} connection reset")
                if self.hang_after is not None and idx == self.hang_after:
                    await asyncio.Event().wait()
                await asyncio.sleep(0)
                yield fragment
            if self.fail_after is not None and self.fail_after >= len(self.fragments):
                raise ConnectionError(f"{self.provider_id} connection reset")
        finally:
            self.closed += 1

    def as_provider(self) -> Provider:
        return Provider(provider_id=self.provider_id, chat=self.chat, decoder=self.decoder)


async def raw_stream(items: Iterable[Any]) -> AsyncIterator[Any]:
    for item in items:
        yield item


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def conversation() -> list[ChatMessage]:
    return [
        ChatMessage(role=MessageRole.SYSTEM, content="You are terse."),
        ChatMessage(role=MessageRole.USER, content="Say hello."),
    ]
