"""Process-wide settings for feishu-channel, loaded from env / .env."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class ChannelSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FEISHU_CHANNEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- general ---
    app_name: str = "feishu-channel"
    log_level: str = "INFO"

    # --- inbound dedup window ---
    dedup_max_entries: int = 1000
    dedup_ttl_seconds: float = 600.0

    # --- websocket supervision ---
    ws_restart_delay_seconds: float = 5.0


@lru_cache
def get_settings() -> ChannelSettings:
    return ChannelSettings()
