"""Application configuration."""

import os
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "medium"
    openai_store: bool = False
    cache_backend: Literal["supabase", "memory"] = "supabase"
    budget_window_ms: int = Field(default=60_000, gt=0)
    budget_user_limit: int = Field(default=60, gt=0)
    budget_global_limit: int = Field(default=1000, gt=0)
    signature_digest_length: int = Field(default=64, ge=16, le=64)
    generation_timeout_seconds: float = Field(default=60.0, gt=0)
    metrics_window_seconds: float = Field(default=900.0, gt=0)
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
