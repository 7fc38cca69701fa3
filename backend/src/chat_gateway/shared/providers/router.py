"""Provider router — round-robin selection that skips unhealthy providers.

The rotation cursor is the only process-wide selection state.  It is read,
scanned and advanced inside one lock so two concurrent requests can never
both observe the same cursor value.
"""

from __future__ import annotations

import threading

import structlog

from chat_gateway.domain.exceptions import NoProvidersRegisteredError
from chat_gateway.shared.providers.registry import ProviderRegistry
from chat_gateway.shared.providers.types import Provider

logger = structlog.get_logger(__name__)


class ProviderRouter:
    """Selects the next provider in rotation order."""

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

        # Round-robin state
        self._cursor = 0
        self._selections = 0
        self._lock = threading.Lock()

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def selections(self) -> int:
        """Total number of cursor advancements since startup."""
        return self._selections

    def next(self, *, exclude: set[str] | None = None) -> Provider:
        """Return the next available provider and advance the cursor past it.

        If every candidate is cooling down, the least-recently-failed one is
        returned anyway; only an empty (or fully excluded) registry fails.
        """
        exclude = exclude or set()
        providers = self._registry.list_providers()
        if not providers:
            raise NoProvidersRegisteredError()

        count = len(providers)
        with self._lock:
            fallback: tuple[float, int] | None = None
            for offset in range(count):
                idx = (self._cursor + offset) % count
                provider = providers[idx]
                if provider.provider_id in exclude:
                    continue

                state = self._registry.state_of(provider.provider_id)
                if state.healthy:
                    return self._advance(providers, idx)

                logger.debug("provider_skipped_unhealthy", provider=provider.provider_id)
                failed_at = state.last_failure_at if state.last_failure_at is not None else float("-inf")
                if fallback is None or failed_at < fallback[0]:
                    fallback = (failed_at, idx)

            if fallback is None:
                raise NoProvidersRegisteredError(
                    f"All {count} registered providers were excluded"
                )

            provider = self._advance(providers, fallback[1])

        logger.warning(
            "no_healthy_providers_degraded_pick",
            provider=provider.provider_id,
            excluded=sorted(exclude),
            total_configured=count,
        )
        return provider

    def _advance(self, providers: list[Provider], idx: int) -> Provider:
        """Caller must hold lock."""
        self._cursor = (idx + 1) % len(providers)
        self._selections += 1
        return providers[idx]
