"""Cancellable, pull-based token stream handed to gateway callers."""

from __future__ import annotations

from types import TracebackType
from typing import AsyncGenerator, Callable

from chat_gateway.domain.entities import Token


class TokenStream:
    """Async iterator of ``Token`` with an explicit release contract.

    Callers either drain the stream, or call ``aclose()`` (directly or by
    leaving an ``async with`` block) to abandon it.  Closing releases the
    underlying provider stream immediately and is idempotent.

    A stream has a single consumer.  To abandon a stream that another task
    is currently reading, cancel that task; calling ``aclose()`` while a pull
    is in flight raises ``RuntimeError``.
    """

    def __init__(self, source: Callable[[TokenStream], AsyncGenerator[Token, None]]) -> None:
        self.provider_id: str | None = None
        self._closed = False
        self._pulling = False
        self._source = source(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> TokenStream:
        return self

    async def __anext__(self) -> Token:
        if self._closed:
            raise StopAsyncIteration
        self._pulling = True
        try:
            return await self._source.__anext__()
        except BaseException:
            # Exhaustion, surfaced errors and cancellation all end the stream.
            self._closed = True
            raise
        finally:
            self._pulling = False

    async def aclose(self) -> None:
        if self._closed:
            return
        if self._pulling:
            raise RuntimeError(
                "TokenStream is being read by another task; cancel that task to abandon it"
            )
        self._closed = True
        await self._source.aclose()

    async def collect(self) -> list[Token]:
        """Drain the stream into a list."""
        return [token async for token in self]

    async def __aenter__(self) -> TokenStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
