"""Stream normalizer — provider-shaped fragments in, canonical tokens out.

Each call is an independent, stateless transform: sequence numbers start at
0 and increase by one per emitted token, in arrival order.
"""

from __future__ import annotations

import codecs
from typing import Any, AsyncIterable, AsyncIterator

from chat_gateway.domain.entities import Token
from chat_gateway.domain.exceptions import StreamInterruptedError
from chat_gateway.shared.providers.decoders import PLAIN_TEXT
from chat_gateway.shared.providers.types import ChunkDecoder


async def normalize(
    raw_stream: AsyncIterable[Any],
    decoder: ChunkDecoder | None = None,
    *,
    provider_id: str | None = None,
) -> AsyncIterator[Token]:
    """Yield ``Token`` objects decoded from ``raw_stream``.

    Fragments without text produce no token.  A terminal fragment ends the
    stream; anything after it is not read.  If the raw stream is exhausted
    without a terminal fragment and the decoder requires one, every token
    already produced is yielded first and ``StreamInterruptedError`` is
    raised.  Errors raised by the raw stream propagate unchanged.

    ``bytes`` fragments are UTF-8 decoded incrementally before reaching the
    decoder, so a character split across two network reads is reassembled.
    """
    decoder = decoder or PLAIN_TEXT
    utf8 = codecs.getincrementaldecoder("utf-8")()
    iterator = raw_stream.__aiter__()
    sequence = 0
    terminated = False
    try:
        async for chunk in iterator:
            if isinstance(chunk, bytes):
                chunk = utf8.decode(chunk)
            decoded = decoder.decode(chunk)
            if decoded.text:
                yield Token(sequence=sequence, text=decoded.text)
                sequence += 1
            if decoded.terminal:
                terminated = True
                break
    finally:
        await aclose_if_supported(iterator)

    if not terminated:
        # Raises on a truncated multi-byte sequence at end of stream
        utf8.decode(b"", final=True)
    if not terminated and decoder.requires_terminal:
        raise StreamInterruptedError(provider_id, tokens_delivered=sequence)


async def aclose_if_supported(stream: Any) -> None:
    """Close an async iterator if it supports ``aclose()``."""
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()
