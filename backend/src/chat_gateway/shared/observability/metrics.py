"""Prometheus metrics for the chat gateway."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


# ── HTTP metrics ─────────────────────────────────────────────
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

# Streaming responses: response start vs. last body chunk
HTTP_FIRST_BYTE_DURATION = Histogram(
    "http_response_first_byte_seconds",
    "Time until the HTTP response started",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Provider metrics ─────────────────────────────────────────
PROVIDER_ATTEMPTS = Counter(
    "provider_attempts_total",
    "Provider attempts by outcome",
    ["provider", "outcome"],  # success / failed / interrupted / cancelled
)

PROVIDER_FAILOVERS = Counter(
    "provider_failovers_total",
    "Requests served by a provider other than the first one selected",
)

# ── Stream metrics ───────────────────────────────────────────
CHAT_STREAMS_TOTAL = Counter(
    "chat_streams_total",
    "Chat streams by terminal state",
    ["outcome"],
)

CHAT_TOKENS_TOTAL = Counter(
    "chat_tokens_total",
    "Tokens delivered to callers",
    ["provider"],
)

CHAT_FIRST_TOKEN_LATENCY = Histogram(
    "chat_first_token_seconds",
    "Time from provider call to first token",
    ["provider"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)
