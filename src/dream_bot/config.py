"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    telegram_allowed_user_ids: str | None = None
    supabase_url: str
    supabase_service_key: str
    session_collection: str = "sd-bot"
    render_backend_url: str = "http://localhost:9000"
    render_poll_interval: float = 0.1
    render_timeout_seconds: float = 300
    render_max_poll_errors: int = 5
    default_model: str = "realisticVisionV13_v13"
    default_sampler: str = "dpmpp_sde"
    default_steps: int = 25
    default_vram_usage_level: str = "balanced"
    block_nsfw: bool = False
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_allowed_user_ids(raw: str | None) -> set[int] | None:
    """Parse allowed Telegram user IDs from env."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return None
    ids: set[int] = set()
    for chunk in cleaned.split(","):
        value = chunk.strip()
        if value.isdigit():
            ids.add(int(value))
    return ids or None
