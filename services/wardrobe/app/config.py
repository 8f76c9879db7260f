"""Application configuration using Pydantic settings."""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentSettings(BaseModel):
    max_retries: int = Field(default=3, ge=0)
    timeout_ms: int = Field(default=30_000, ge=0)
    enable_critique: bool = True
    enable_learning: bool = True
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    parallel_steps: bool = False
    retry_base_delay_s: float = Field(default=1.0, ge=0)
    max_executions: int = Field(default=500, ge=1)


class WeatherSettings(BaseModel):
    api_key: str | None = None
    base_url: str = "https://api.openweathermap.org/data/2.5"
    default_city: str = "New York"
    timeout_s: float = 10.0


class PerceptionSettings(BaseModel):
    enable_client_side: bool = False
    similarity_threshold: float = Field(default=0.8, ge=0, le=1)
    max_file_size: int = 10 * 1024 * 1024
    embedding_dimension: int = 384
    vision_url: str | None = Field(default=None, description="Endpoint returning image attributes as JSON")
    vision_api_key: str = ""


class StorageSettings(BaseModel):
    database_url: str = Field(
        default="sqlite+aiosqlite:///./wardrobe.db",
        description="SQLAlchemy async database URL",
    )
    s3_endpoint: str | None = None
    s3_region: str | None = None
    s3_bucket: str | None = None


class ObservabilitySettings(BaseModel):
    otel_service_name: str = "wardrobe-agents"
    otel_exporter_otlp_endpoint: str | None = None
    log_level: str = "INFO"


class WardrobeSettings(BaseSettings):
    agent: AgentSettings = AgentSettings()
    weather: WeatherSettings = WeatherSettings()
    perception: PerceptionSettings = PerceptionSettings()
    storage: StorageSettings = StorageSettings()
    observability: ObservabilitySettings = ObservabilitySettings()
    environment: Literal["development", "staging", "production"] | str = "development"

    model_config = SettingsConfigDict(env_nested_delimiter="__", env_prefix="WARDROBE_", case_sensitive=False)


@lru_cache(maxsize=1)
def get_settings(**kwargs: Any) -> WardrobeSettings:
    """Return cached settings instance."""
    return WardrobeSettings(**kwargs)


__all__ = [
    "AgentSettings",
    "PerceptionSettings",
    "WardrobeSettings",
    "WeatherSettings",
    "get_settings",
]
