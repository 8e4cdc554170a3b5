"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class ClientSettings(BaseSettings):
    """Settings needed by an editing client talking to the API."""

    api_base_url: str = "http://localhost:8000"
    http_timeout_seconds: float = 10.0
    autosave_debounce_seconds: float = 5.0
    autosave_interval_seconds: float = 30.0
    autosave_saved_display_seconds: float = 2.0
    autosave_error_cooldown_seconds: float = 10.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


class Settings(ClientSettings):
    """Server settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    sessions_table: str = "wellness_sessions"
    cors_origins: str | None = None


def parse_cors_origins(raw: str | None) -> list[str]:
    """Parse allowed CORS origins from env."""
    if raw is None:
        return []
    cleaned = raw.strip()
    if cleaned == "*":
        return ["*"]
    return [origin.strip() for origin in cleaned.split(",") if origin.strip()]
