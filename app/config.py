"""Configuration management for the alert routing engine."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5032)
    log_level: str = Field(default="INFO")

    # Datastore
    database_url: str = Field(default="sqlite+aiosqlite:///./routing.db")
    create_tables: bool = Field(default=True)

    # Routing behavior
    routing_stop_at_first_match: bool = Field(default=True)
    matches_default_limit: int = Field(default=50, ge=1, le=500)

    # Optional rule seed file, applied when the store is empty
    rules_seed: str = Field(default="rules.yaml")

    @property
    def rules_seed_path(self) -> Path:
        return Path(self.rules_seed)


@lru_cache
def get_settings() -> Settings:
    return Settings()
