"""Application configuration."""
from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from .env and environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = Field(
        default="sqlite+pysqlite:///./archforge.db",
        validation_alias=AliasChoices("DATABASE_URL", "ARCHFORGE_DATABASE_URL"),
    )
    default_provider: str = "aws"
    default_region: str = "us-east-1"
    default_engine: str = "terraform"
    strict_diagram_validation: bool = False  # check node types and properties against the provider catalog
    output_dir: str = "outputs"
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "ARCHFORGE_LOG_LEVEL"),
    )
    request_timeout_seconds: float = 0.0
    pricing_currency: str = "USD"


settings = Settings()
