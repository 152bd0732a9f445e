from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", env_file=".env")

    api_base_url: str = "http://api:8000"
    log_level: str = "INFO"
    # Profiles whose last successful extraction is older than this get re-crawled.
    recrawl_max_age_hours: float = Field(default=168.0, gt=0)
    recrawl_batch_size: int = Field(default=20, ge=1, le=500)
    # Re-crawls are slow (fetch + inference); keep the HTTP timeout above the API's extraction timeout.
    recrawl_timeout_seconds: float = Field(default=90.0, gt=0)
    worker_interval_seconds: int = 900


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
