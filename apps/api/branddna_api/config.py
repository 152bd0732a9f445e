from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", env_file=".env")

    app_name: str = "BrandDNA API"
    cors_origin: str = "http://localhost:3000"
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./branddna.db"

    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "openai/gpt-4o"
    openrouter_max_output_tokens: int = Field(default=2000, ge=128, le=8192)

    # Extraction is slow (fetch + inference); callers may pass a shorter per-request timeout.
    extraction_timeout_seconds: float = Field(default=45.0, gt=0, le=300)
    fetch_user_agent: str = "BrandDNA/1.0"
    max_analyzed_chars: int = Field(default=10000, ge=500, le=50000)

    # Channel-level confidence: every field from one channel gets the same trust score.
    llm_channel_confidence: int = Field(default=85, ge=0, le=100)
    metadata_channel_confidence: int = Field(default=70, ge=0, le=100)
    no_content_confidence: int = Field(default=40, ge=0, le=100)

    completion_threshold: int = Field(default=70, ge=0, le=100)
    low_confidence_threshold: int = Field(default=50, ge=0, le=100)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
