"""Per-provider health tracker with exponential cooldown.

State machine:
    HEALTHY   → (failure)                     → UNHEALTHY (cooldown armed)
    UNHEALTHY → (cooldown expires)            → HEALTHY (failure count kept)
    UNHEALTHY → (success, e.g. degraded pick) → HEALTHY (failure count reset)

Cooldown after a failure is ``min(base * 2**consecutive_failures, max)``,
computed from the count *before* the failure is added, so the first
failure cools down for ``base`` seconds.
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from typing import Callable

import structlog

from chat_gateway.shared.providers.types import ProviderHealth, ProviderState

logger = structlog.get_logger(__name__)


class ProviderHealthTracker:
    """Thread-safe owner of a single ``ProviderState``."""

    def __init__(
        self,
        provider_id: str,
        *,
        cooldown_base_s: float = 1.0,
        cooldown_max_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._provider_id = provider_id
        self._cooldown_base = cooldown_base_s
        self._cooldown_max = cooldown_max_s
        self._clock = clock

        self._state = ProviderState(provider_id=provider_id)
        self._lock = threading.Lock()

        # Cumulative counters (never reset)
        self._total_requests = 0
        self._total_successes = 0
        self._total_failures = 0
        self._total_interruptions = 0

    @property
    def provider_id(self) -> str:
        return self._provider_id

    # ── Recording ────────────────────────────────────────────
    def record_success(self) -> None:
        with self._lock:
            recovered = not self._state.healthy or self._state.consecutive_failures > 0
            self._state.healthy = True
            self._state.consecutive_failures = 0
            self._state.cooldown_until = None
            self._total_requests += 1
            self._total_successes += 1
        if recovered:
            logger.info("provider_recovered", provider=self._provider_id)

    def record_failure(self, error: str, *, interrupted: bool = False) -> float:
        """Mark the provider unhealthy and arm its cooldown.

        Returns the cooldown duration in seconds.
        """
        with self._lock:
            now = self._clock()
            cooldown = min(
                self._cooldown_base * (2 ** self._state.consecutive_failures),
                self._cooldown_max,
            )
            self._state.healthy = False
            self._state.cooldown_until = now + cooldown
            self._state.consecutive_failures += 1
            self._state.last_failure_at = now
            self._state.last_error = error
            self._total_requests += 1
            self._total_failures += 1
            if interrupted:
                self._total_interruptions += 1
            failures = self._state.consecutive_failures

        logger.warning(
            "provider_marked_unhealthy",
            provider=self._provider_id,
            consecutive_failures=failures,
            cooldown_s=cooldown,
            error=error,
        )
        return cooldown

    def reset(self) -> None:
        """Force the provider back to healthy (admin override)."""
        with self._lock:
            self._state = ProviderState(provider_id=self._provider_id)
        logger.info("provider_health_force_reset", provider=self._provider_id)

    # ── Reading ──────────────────────────────────────────────
    @property
    def state(self) -> ProviderState:
        """A copy of the current state, with expired cooldowns applied."""
        with self._lock:
            self._maybe_recover()
            return replace(self._state)

    def is_available(self) -> bool:
        with self._lock:
            self._maybe_recover()
            return self._state.healthy

    @property
    def health(self) -> ProviderHealth:
        """Produce a read-only health snapshot."""
        with self._lock:
            self._maybe_recover()
            now = self._clock()
            remaining = 0.0
            if self._state.cooldown_until is not None and not self._state.healthy:
                remaining = max(0.0, self._state.cooldown_until - now)
            return ProviderHealth(
                provider_id=self._provider_id,
                healthy=self._state.healthy,
                consecutive_failures=self._state.consecutive_failures,
                cooldown_remaining_s=round(remaining, 3),
                total_requests=self._total_requests,
                total_successes=self._total_successes,
                total_failures=self._total_failures,
                total_interruptions=self._total_interruptions,
                last_error=self._state.last_error,
                last_failure_at=self._state.last_failure_at,
            )

    # ── Internals ────────────────────────────────────────────
    def _maybe_recover(self) -> None:
        """Caller must hold lock."""
        state = self._state
        if state.healthy or state.cooldown_until is None:
            return
        if self._clock() >= state.cooldown_until:
            state.healthy = True
            state.cooldown_until = None
            logger.info(
                "provider_cooldown_expired",
                provider=self._provider_id,
                consecutive_failures=state.consecutive_failures,
            )
