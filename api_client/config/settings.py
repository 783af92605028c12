"""Client settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseModel):
    """Connection and retry behavior for one API client."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(min_length=1)
    debug: bool = False
    max_retries: int = Field(default=3, ge=0)
    retry_delay_seconds: float = Field(default=2.0, ge=0)
    timeout_seconds: float = Field(default=10.0, gt=0)


class Settings(BaseSettings):
    """Runtime settings for the command line client."""

    model_config = SettingsConfigDict(
        env_prefix="API_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    base_url: str = "https://api.example.com"
    debug: bool = False
    max_retries: int = Field(default=3, ge=0, le=100)
    retry_delay_seconds: float = Field(default=2.0, ge=0, le=300)
    timeout_seconds: float = Field(default=10.0, gt=0, le=300)

    def client_config(self) -> ClientConfig:
        """Return the immutable client configuration."""

        return ClientConfig(
            base_url=self.base_url,
            debug=self.debug,
            max_retries=self.max_retries,
            retry_delay_seconds=self.retry_delay_seconds,
            timeout_seconds=self.timeout_seconds,
        )


def get_settings() -> Settings:
    """Return application settings."""

    return Settings()
