"""Application settings using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Launchpad configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Launchpad", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Minimum log level"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=4000, ge=1, le=65535, description="Server port")

    # Database - Supabase
    supabase_url: str = Field(description="Supabase project URL")
    supabase_key: SecretStr = Field(description="Supabase API key")
    postgres_schema: str = Field(
        default="public", description="PostgreSQL schema holding created_tokens"
    )

    # Trade feed - PumpPortal
    pumpportal_ws_url: str = Field(
        default="wss://pumpportal.fun/api/data",
        description="PumpPortal trade feed WebSocket URL",
    )
    stream_max_reconnect_attempts: int = Field(
        default=20, ge=0, description="Consecutive reconnects before giving up"
    )
    stream_reconnect_base_seconds: float = Field(
        default=5.0, gt=0, description="First reconnect delay, doubled per attempt"
    )
    stream_reconnect_max_seconds: float = Field(
        default=30.0, gt=0, description="Upper bound on reconnect delay"
    )
    stream_open_timeout_seconds: float = Field(
        default=30.0, gt=0, description="WebSocket handshake timeout"
    )

    # Price quotes - Jupiter
    jupiter_quote_url: str = Field(
        default="https://quote-api.jup.ag/v6",
        description="Jupiter quote API base URL",
    )
    jupiter_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Quote request timeout"
    )
    sol_price_ttl_seconds: int = Field(
        default=300, ge=1, description="SOL price cache lifetime"
    )
    sol_price_refresh_minutes: float = Field(
        default=5.0, gt=0, description="Interval of the background SOL price refresh"
    )

    # Market cap pipeline
    market_cap_staleness_minutes: float = Field(
        default=15.0, gt=0, description="Age after which a stored market cap is refreshed"
    )
    market_cap_settling_seconds: float = Field(
        default=5.0, ge=0, description="Wait for live trades after subscribing"
    )
    market_cap_interval_minutes: float = Field(
        default=0.25, gt=0, description="Minutes between scheduled update cycles"
    )
    market_cap_scheduler_autostart: bool = Field(
        default=True, description="Start the market cap scheduler on app startup"
    )

    # Circuit Breaker
    circuit_breaker_threshold: int = Field(
        default=5, ge=1, description="Failures before circuit opens"
    )
    circuit_breaker_cooldown: int = Field(
        default=30, ge=1, description="Seconds before half-open"
    )

    @field_validator("supabase_url", "jupiter_quote_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        """Validate HTTP URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v

    @field_validator("pumpportal_ws_url")
    @classmethod
    def validate_ws_url(cls, v: str) -> str:
        """Validate WebSocket URL format."""
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("PumpPortal URL must start with ws:// or wss://")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]  # Values from env
