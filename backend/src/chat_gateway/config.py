"""Unified Chat Gateway — Application Configuration."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, enum.Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Centralised, validated configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    app_name: str = "unified-chat-gateway"
    app_env: Environment = Environment.DEVELOPMENT
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # ── Providers ────────────────────────────────────────────
    # Comma-separated; order is rotation order.
    gateway_providers: str = "openai,anthropic,google"

    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    openai_base_url: str = "https://api.openai.com/v1"

    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_max_tokens: int = 4096

    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"
    google_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # ── Provider Resilience ──────────────────────────────────
    provider_timeout_seconds: float = 60.0
    provider_cooldown_base_seconds: float = 1.0
    provider_cooldown_max_seconds: float = 60.0
    provider_first_token_timeout_seconds: float = 0.0  # 0 = disabled

    # ── Derived helpers ──────────────────────────────────────
    @property
    def is_production(self) -> bool:
        return self.app_env == Environment.PRODUCTION

    @property
    def provider_order(self) -> list[str]:
        return [p.strip().lower() for p in self.gateway_providers.split(",") if p.strip()]

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("gateway_providers")
    @classmethod
    def _require_providers(cls, v: str) -> str:
        if not any(p.strip() for p in v.split(",")):
            raise ValueError("gateway_providers must name at least one provider")
        return v

    @field_validator("provider_cooldown_base_seconds", "provider_cooldown_max_seconds")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("cooldown durations must not be negative")
        return v


def get_settings(**overrides: Any) -> Settings:
    """Factory that allows test-time overrides."""
    return Settings(**overrides)
