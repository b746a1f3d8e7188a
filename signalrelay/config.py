"""SignalRelay configuration loaded from environment variables."""

from __future__ import annotations

import json
from pydantic_settings import BaseSettings
from pydantic import Field, AliasChoices


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("PORT", "LOCAL_SERVER_PORT"),
    )
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    rate_limit: str = Field(default="100/minute", alias="RATE_LIMIT")
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="text", alias="LOG_FORMAT")

    # Monitoring
    monitor_interval_seconds: float = Field(
        default=5.0,
        validation_alias=AliasChoices("MONITOR_INTERVAL_SECONDS", "MONITOR_INTERVAL"),
    )
    fetch_timeout_seconds: float = Field(default=15.0, alias="FETCH_TIMEOUT_SECONDS")
    allow_list: str = Field(
        default="",
        validation_alias=AliasChoices("ALLOW_LIST", "TARGET_AUTHORS"),
    )
    dedupe_window: int = Field(default=500, alias="DEDUPE_WINDOW")

    # Classification / retention
    min_confidence: float = Field(default=0.3, alias="MIN_CONFIDENCE")
    max_history_size: int = Field(default=1000, alias="MAX_HISTORY_SIZE")

    # Message sources (demo feed used when no SOURCE_URL is set)
    source_url: str = Field(default="", alias="SOURCE_URL")
    source_token: str = Field(default="", alias="SOURCE_TOKEN")
    source_channels: str = Field(default="", alias="SOURCE_CHANNELS")
    enable_demo_source: bool = Field(default=True, alias="ENABLE_DEMO_SOURCE")

    # Outbound forwarding of accepted signals to another process
    downstream_url: str = Field(default="", alias="DOWNSTREAM_URL")
    downstream_timeout_seconds: float = Field(default=5.0, alias="DOWNSTREAM_TIMEOUT_SECONDS")

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in {"production", "prod"}

    @property
    def allow_list_entries(self) -> list[str]:
        return _split_csv(self.allow_list)

    @property
    def source_channel_list(self) -> list[str]:
        return _split_csv(self.source_channels)

    @property
    def cors_origins_list(self) -> list[str]:
        raw = (self.cors_origins or "").strip()
        if not raw:
            return []

        # Supports JSON list format and comma-separated format.
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    return [str(origin).strip() for origin in parsed if str(origin).strip()]
            except json.JSONDecodeError:
                pass

        return _split_csv(raw)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


settings = Settings()
