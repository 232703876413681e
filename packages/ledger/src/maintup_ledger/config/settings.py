"""Configuration settings for Maintup Ledger."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # HTTP API server
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=3000, validation_alias="PORT")
    api_token: SecretStr | None = Field(default=None, validation_alias="API_TOKEN")
    cors_origin: str = Field(default="*", validation_alias="CORS_ORIGIN")
    data_file: str = Field(default="data.json", validation_alias="DATA_FILE")

    # Client side
    api_url: str = Field(default="http://localhost:3000", validation_alias="API_URL")
    api_timeout: float = Field(default=30.0, validation_alias="API_TIMEOUT")
    local_store_file: str = Field(
        default=".maintup-local.json", validation_alias="LOCAL_STORE_FILE"
    )
    sync_retry_interval: float = Field(
        default=30.0, validation_alias="SYNC_RETRY_INTERVAL"
    )
    admin_password: SecretStr | None = Field(
        default=None, validation_alias="ADMIN_PASSWORD"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )

    def token_value(self) -> str | None:
        """Return the configured bearer token, or None when the API is open."""
        if self.api_token is None:
            return None
        return self.api_token.get_secret_value() or None


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
