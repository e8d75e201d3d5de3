"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PLUME_",
        case_sensitive=False,
    )

    app_name: str = "Plume Compression Orchestrator"
    environment: str = "development"
    debug: bool = True
    log_json: bool = True

    host: str = "127.0.0.1"
    port: int = 8000
    api_v1_prefix: str = "/v1"
    cors_allowed_origins: List[str] = ["*"]

    backend_base_url: str = "http://127.0.0.1:8765"
    backend_timeout_seconds: float = 300.0
    tool_version: str = "plume-v0.1.0"

    progress_tick_seconds: float = 0.1
    progress_min_duration_seconds: float = 0.8
    progress_max_duration_seconds: float = 30.0
    progress_seconds_per_mb: float = 0.6

    default_quality: int = 80
    default_output_format: str = "webp"
    default_compression_level: str = "balanced"

    notification_history: int = 100

    auth_token: Optional[str] = None
    auth_token_header: str = "Authorization"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
