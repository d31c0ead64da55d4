"""Lightweight configuration for the Immortality simulation kernel."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Minimal application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    data_dir: Path = Field(default=Path("saves"), description="Where game snapshots live")
    rules_version: str = Field(default="1.0", description="Ruleset version used by the domain")
    tick_interval_ms: float = Field(
        default=25.0,
        description="Base real-time milliseconds per tick before the speed divider is applied",
        gt=0.0,
    )
    default_speed_divider: int = Field(
        default=40,
        description="Speed tier new games start on (40 is the slowest tier)",
    )
    field_detail_limit: int = Field(
        default=300,
        description="Number of fields tracked individually before batching kicks in",
        ge=0,
    )
    max_catchup_ticks: int = Field(
        default=4000,
        description="Upper bound on ticks run in one scheduler cycle after a stall",
        ge=1,
    )
    autosave_interval_seconds: float = Field(
        default=60.0,
        description="Real-time seconds between automatic saves of loaded games",
        gt=0.0,
    )
    scientific_notation: bool = Field(
        default=False, description="Default number rendering mode for new games"
    )
    log_level: str = Field(default="INFO", description="Root logging level for the server")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:4200", "http://127.0.0.1:4200"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
