"""Application configuration and settings management."""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central gateway settings loaded from environment variables."""

    app_name: str = Field(default="CTO Portal Gateway")
    api_prefix: str = Field(default="/api")

    upstream_base_url: str = Field(default="http://localhost:3000/api")
    upstream_timeout_seconds: float = Field(default=10.0)

    cors_origins: List[str] = Field(default_factory=list)
    log_level: str = Field(default="INFO")

    # Filing rules
    lead_working_days: int = Field(default=5, ge=0)
    hours_per_day: float = Field(default=8.0, gt=0)

    # Draft lifecycle
    memo_snapshot_ttl_seconds: int = Field(default=300, ge=0)
    draft_ttl_seconds: int = Field(default=60 * 60, ge=1)

    model_config = {
        "env_file": ".env",
        "env_prefix": "CTO_",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()  # type: ignore[arg-type]

