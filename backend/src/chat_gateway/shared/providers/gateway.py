"""Resilient chat gateway — selection, failover and first-byte streaming.

Composes ProviderRegistry, ProviderRouter and the stream normalizer into a
single ``chat(messages) -> TokenStream`` operation.  Per request:

    SELECTING → ATTEMPTING → STREAMING → COMPLETED
                                       → INTERRUPTED   (surfaced)
                ATTEMPTING → SELECTING (retry before first token)
                           → … → EXHAUSTED             (surfaced)

A failure before the first token is delivered is recovered locally by
trying another provider.  Once a token has reached the caller the stream
is never spliced: the provider is marked unhealthy and
``StreamInterruptedError`` is raised after the delivered prefix.
"""

from __future__ import annotations

import asyncio
from typing import AsyncGenerator, Awaitable, Sequence, TypeVar

import structlog

from chat_gateway.domain.entities import ChatMessage, Token
from chat_gateway.domain.enums import StreamOutcome
from chat_gateway.domain.exceptions import (
    AllProvidersExhaustedError,
    NoProvidersRegisteredError,
    ProviderCallError,
    StreamInterruptedError,
)
from chat_gateway.shared.observability.metrics import (
    CHAT_FIRST_TOKEN_LATENCY,
    CHAT_STREAMS_TOTAL,
    CHAT_TOKENS_TOTAL,
    PROVIDER_ATTEMPTS,
    PROVIDER_FAILOVERS,
)
from chat_gateway.shared.providers.normalizer import aclose_if_supported, normalize
from chat_gateway.shared.providers.registry import ProviderRegistry
from chat_gateway.shared.providers.router import ProviderRouter
from chat_gateway.shared.providers.stream import TokenStream
from chat_gateway.shared.providers.types import Provider, ProviderHealth

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ResilientChatGateway:
    """Failover controller over a frozen provider registry.

    Usage::

        registry = ProviderRegistry([Provider("a", chat=call_a), ...])
        gateway = ResilientChatGateway(registry)

        async with gateway.chat(messages) as stream:
            async for token in stream:
                ...
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        router: ProviderRouter | None = None,
        first_token_timeout_s: float = 0.0,
    ) -> None:
        registry.freeze()
        self._registry = registry
        self._router = router or ProviderRouter(registry)
        self._first_token_timeout = first_token_timeout_s

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def router(self) -> ProviderRouter:
        return self._router

    # ── Main entry-point ─────────────────────────────────────
    def chat(self, messages: Sequence[ChatMessage]) -> TokenStream:
        """Return a lazy stream; no provider is contacted until it is pulled."""
        conversation = tuple(messages)
        return TokenStream(lambda stream: self._run(conversation, stream))

    async def _run(
        self,
        messages: tuple[ChatMessage, ...],
        stream: TokenStream,
    ) -> AsyncGenerator[Token, None]:
        max_attempts = len(self._registry)
        if max_attempts == 0:
            raise NoProvidersRegisteredError()

        causes: list[ProviderCallError] = []
        attempted: set[str] = set()

        while len(causes) < max_attempts:
            provider = self._router.next(exclude=attempted)
            pid = provider.provider_id
            attempted.add(pid)
            stream.provider_id = pid
            tracker = self._registry.tracker(pid)
            log = logger.bind(provider=pid, attempt=len(causes) + 1, max_attempts=max_attempts)

            # ── ATTEMPTING: open the stream and pull the first token ──
            opened: list[AsyncGenerator[Token, None]] = []
            loop = asyncio.get_running_loop()
            start = loop.time()
            try:
                first = await self._with_timeout(self._start(provider, messages, opened))
            except Exception as exc:
                if opened:
                    await aclose_if_supported(opened[0])
                reason = f"{type(exc).__name__}: {exc}"
                causes.append(ProviderCallError(pid, exc))
                tracker.record_failure(reason)
                PROVIDER_ATTEMPTS.labels(provider=pid, outcome="failed").inc()
                log.warning("provider_attempt_failed", error=reason)
                continue
            except BaseException:
                if opened:
                    await aclose_if_supported(opened[0])
                PROVIDER_ATTEMPTS.labels(provider=pid, outcome="cancelled").inc()
                CHAT_STREAMS_TOTAL.labels(outcome=StreamOutcome.CANCELLED.value).inc()
                log.info("chat_stream_cancelled", tokens_delivered=0)
                raise

            tokens = opened[0]
            if causes:
                PROVIDER_FAILOVERS.inc()
                log.info(
                    "provider_failover_success",
                    attempts=len(causes) + 1,
                    failed_providers=[c.provider_id for c in causes],
                )

            # ── STREAMING ──
            delivered = 0
            try:
                if first is not None:
                    CHAT_FIRST_TOKEN_LATENCY.labels(provider=pid).observe(loop.time() - start)
                    delivered += 1
                    yield first
                    async for token in tokens:
                        delivered += 1
                        yield token
            except Exception as exc:
                cause = exc.cause if isinstance(exc, StreamInterruptedError) else exc
                reason = f"{type(cause).__name__}: {cause}" if cause else "stream closed without terminal marker"
                tracker.record_failure(reason, interrupted=True)
                PROVIDER_ATTEMPTS.labels(provider=pid, outcome="interrupted").inc()
                CHAT_STREAMS_TOTAL.labels(outcome=StreamOutcome.INTERRUPTED.value).inc()
                log.warning("chat_stream_interrupted", tokens_delivered=delivered, error=reason)
                raise StreamInterruptedError(pid, tokens_delivered=delivered, cause=cause) from exc
            except BaseException:
                # Caller abandoned the stream; this is not the provider's fault.
                PROVIDER_ATTEMPTS.labels(provider=pid, outcome="cancelled").inc()
                CHAT_STREAMS_TOTAL.labels(outcome=StreamOutcome.CANCELLED.value).inc()
                log.info("chat_stream_cancelled", tokens_delivered=delivered)
                raise
            finally:
                await aclose_if_supported(tokens)
                if delivered:
                    CHAT_TOKENS_TOTAL.labels(provider=pid).inc(delivered)

            # ── COMPLETED ──
            tracker.record_success()
            PROVIDER_ATTEMPTS.labels(provider=pid, outcome="success").inc()
            CHAT_STREAMS_TOTAL.labels(outcome=StreamOutcome.COMPLETED.value).inc()
            log.info("chat_stream_completed", tokens_delivered=delivered)
            return

        CHAT_STREAMS_TOTAL.labels(outcome=StreamOutcome.EXHAUSTED.value).inc()
        logger.error(
            "all_providers_exhausted",
            attempts=len(causes),
            errors={c.provider_id: c.message for c in causes},
        )
        raise AllProvidersExhaustedError(causes)

    # ── Attempt helpers ──────────────────────────────────────
    @staticmethod
    async def _start(
        provider: Provider,
        messages: tuple[ChatMessage, ...],
        opened: list[AsyncGenerator[Token, None]],
    ) -> Token | None:
        """Invoke the capability and pull the first token (None if empty)."""
        raw = await provider.chat(messages)
        tokens = normalize(raw, provider.decoder, provider_id=provider.provider_id)
        opened.append(tokens)
        return await anext(tokens, None)

    async def _with_timeout(self, awaitable: Awaitable[T]) -> T:
        """Apply the first-token deadline, if one is configured.

        Only an expiry of this deadline is reported as "No output within";
        a ``TimeoutError`` raised by the provider itself passes through.
        """
        if self._first_token_timeout <= 0:
            return await awaitable
        deadline = asyncio.timeout(self._first_token_timeout)
        try:
            async with deadline:
                return await awaitable
        except TimeoutError as exc:
            if deadline.expired():
                raise TimeoutError(f"No output within {self._first_token_timeout}s") from exc
            raise

    # ── Health observation ───────────────────────────────────
    def get_health(self, provider_id: str) -> ProviderHealth | None:
        return self._registry.get_health(provider_id)

    def get_all_health(self) -> list[ProviderHealth]:
        return self._registry.get_all_health()

    def reset_provider(self, provider_id: str) -> bool:
        """Admin reset — marks a provider healthy and clears its cooldown."""
        reset = self._registry.reset_provider(provider_id)
        logger.info("provider_admin_reset", provider=provider_id, found=reset)
        return reset
