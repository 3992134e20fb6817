"""Process-level settings read from the environment and an optional .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentVariables(BaseSettings):
    """Primitive values that decide where the configuration comes from."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    app_config_file: Path = Field(
        default=Path("config.yaml"), validation_alias="APP_CONFIG_FILE"
    )
