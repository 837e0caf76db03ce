"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    openai_api_key: str
    openai_caption_models: str = "gpt-5-nano,gpt-4o-mini"
    jina_api_key: str
    jina_base_url: str = "https://api.jina.ai/v1"
    jina_model: str = "jina-clip-v2"
    analysis_bucket: str = "analysis-assets"
    signed_url_ttl_seconds: int = 600
    worker_batch_limit: int = 5
    retry_cap: int = 3
    feed_timezone: str = "UTC"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_model_list(raw: str | None) -> list[str]:
    """Parse a comma-separated model list from env, keeping order."""
    if raw is None:
        return []
    models: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip()
        if value and value not in models:
            models.append(value)
    return models
