"""Provider selection, failover and stream-normalization core.

Provides round-robin rotation with health-aware skipping, bounded
failover before the first token, and one canonical token stream for
every provider's response format.
"""

from chat_gateway.shared.providers.types import (
    ChatCapability,
    ChunkDecoder,
    DecodedChunk,
    Provider,
    ProviderHealth,
    ProviderState,
)
from chat_gateway.shared.providers.decoders import (
    AnthropicMessagesDecoder,
    GeminiDecoder,
    OpenAIChatDecoder,
    PlainTextDecoder,
)
from chat_gateway.shared.providers.health import ProviderHealthTracker
from chat_gateway.shared.providers.registry import ProviderRegistry
from chat_gateway.shared.providers.router import ProviderRouter
from chat_gateway.shared.providers.normalizer import normalize
from chat_gateway.shared.providers.stream import TokenStream
from chat_gateway.shared.providers.gateway import ResilientChatGateway

__all__ = [
    "AnthropicMessagesDecoder",
    "ChatCapability",
    "ChunkDecoder",
    "DecodedChunk",
    "GeminiDecoder",
    "OpenAIChatDecoder",
    "PlainTextDecoder",
    "Provider",
    "ProviderHealth",
    "ProviderHealthTracker",
    "ProviderRegistry",
    "ProviderRouter",
    "ProviderState",
    "ResilientChatGateway",
    "TokenStream",
    "normalize",
]
