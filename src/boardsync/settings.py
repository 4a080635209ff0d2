"""Application settings using Pydantic BaseSettings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Board settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase Configuration
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    supabase_service_role_key: str | None = None

    # Store layout
    tasks_table: str = "tasks"
    settings_table: str = "board_settings"
    batch_update_function: str = "batch_update_tasks"
    realtime_schema: str = "public"

    # Reorder / move writes
    write_attempts: int = Field(default=1, ge=1)

    log_level: str = "INFO"


# Global settings instance
settings = Settings()
