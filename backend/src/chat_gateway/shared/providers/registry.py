"""Provider registry — the ordered, fixed set of configured providers.

Insertion order is rotation order.  Providers are registered at startup
and the registry is frozen once the gateway is assembled; there is no
removal operation.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable

import structlog

from chat_gateway.domain.exceptions import DuplicateProviderError, RegistryFrozenError
from chat_gateway.shared.providers.health import ProviderHealthTracker
from chat_gateway.shared.providers.types import Provider, ProviderHealth, ProviderState

logger = structlog.get_logger(__name__)


class ProviderRegistry:
    """Holds providers and one health tracker per provider."""

    def __init__(
        self,
        providers: Iterable[Provider] = (),
        *,
        cooldown_base_s: float = 1.0,
        cooldown_max_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cooldown_base = cooldown_base_s
        self._cooldown_max = cooldown_max_s
        self._clock = clock

        self._providers: list[Provider] = []
        self._trackers: dict[str, ProviderHealthTracker] = {}
        self._frozen = False
        self._lock = threading.Lock()

        for provider in providers:
            self.register(provider)

    def register(self, provider: Provider) -> None:
        pid = provider.provider_id
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(pid)
            if pid in self._trackers:
                raise DuplicateProviderError(pid)
            self._providers.append(provider)
            self._trackers[pid] = ProviderHealthTracker(
                pid,
                cooldown_base_s=self._cooldown_base,
                cooldown_max_s=self._cooldown_max,
                clock=self._clock,
            )
        logger.info("provider_registered", provider=pid, position=len(self._providers) - 1)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def list_providers(self) -> list[Provider]:
        return list(self._providers)

    def state_of(self, provider_id: str) -> ProviderState:
        return self._trackers[provider_id].state

    def tracker(self, provider_id: str) -> ProviderHealthTracker:
        return self._trackers[provider_id]

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._trackers

    # ── Health observation ───────────────────────────────────
    def get_health(self, provider_id: str) -> ProviderHealth | None:
        tracker = self._trackers.get(provider_id)
        if not tracker:
            return None
        return tracker.health

    def get_all_health(self) -> list[ProviderHealth]:
        return [self._trackers[p.provider_id].health for p in self._providers]

    def reset_provider(self, provider_id: str) -> bool:
        """Admin reset — clears failure history for a provider."""
        tracker = self._trackers.get(provider_id)
        if not tracker:
            return False
        tracker.reset()
        return True
