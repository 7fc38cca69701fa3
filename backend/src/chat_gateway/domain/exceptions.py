"""Gateway exception hierarchy.

All exceptions inherit from ``GatewayError`` so callers can catch the entire
family in one clause while still discriminating on subclass.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""

    def __init__(self, message: str, *, code: str = "GATEWAY_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# ── Request validation ───────────────────────────────────────
class InvalidRequestError(GatewayError):
    """Malformed conversation; rejected before any provider is contacted."""

    def __init__(self, message: str, *, index: int | None = None) -> None:
        self.index = index
        super().__init__(message, code="INVALID_REQUEST")


# ── Configuration ────────────────────────────────────────────
class DuplicateProviderError(GatewayError):
    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__(
            f"Provider {provider_id!r} is already registered",
            code="DUPLICATE_PROVIDER",
        )


class NoProvidersRegisteredError(GatewayError):
    def __init__(self, message: str = "No providers are registered") -> None:
        super().__init__(message, code="NO_PROVIDERS_REGISTERED")


class RegistryFrozenError(GatewayError):
    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__(
            f"Cannot register {provider_id!r}: the provider registry is frozen",
            code="REGISTRY_FROZEN",
        )


# ── Provider calls ───────────────────────────────────────────
class ProviderCallError(GatewayError):
    """A single provider attempt failed before producing any output."""

    def __init__(self, provider_id: str, cause: BaseException) -> None:
        self.provider_id = provider_id
        self.cause = cause
        super().__init__(
            f"[{provider_id}] {type(cause).__name__}: {cause}",
            code="PROVIDER_CALL_ERROR",
        )


class ProviderStreamError(GatewayError):
    """The provider reported an error in-band, inside its response stream."""

    def __init__(self, provider_id: str | None, message: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"[{provider_id or 'unknown'}] {message}", code="PROVIDER_STREAM_ERROR")


class StreamInterruptedError(GatewayError):
    """The response stream broke before reaching its natural end."""

    def __init__(
        self,
        provider_id: str | None,
        *,
        tokens_delivered: int = 0,
        cause: BaseException | None = None,
    ) -> None:
        self.provider_id = provider_id
        self.tokens_delivered = tokens_delivered
        self.cause = cause
        reason = f"{type(cause).__name__}: {cause}" if cause else "stream closed without terminal marker"
        super().__init__(
            f"Stream from {provider_id or 'provider'} interrupted after "
            f"{tokens_delivered} token(s): {reason}",
            code="STREAM_INTERRUPTED",
        )


class AllProvidersExhaustedError(GatewayError):
    """Every attempt failed before the first token was delivered."""

    def __init__(self, causes: list[ProviderCallError]) -> None:
        self.causes = list(causes)
        providers = ", ".join(c.provider_id for c in self.causes) or "none"
        super().__init__(
            f"All providers exhausted: {providers}",
            code="ALL_PROVIDERS_EXHAUSTED",
        )

    @property
    def errors(self) -> dict[str, str]:
        return {c.provider_id: f"{type(c.cause).__name__}: {c.cause}" for c in self.causes}
