"""Configuration helpers for the Technology Matrix service."""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing at call time."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True
    )

    restdb_base: str | None = Field(None, alias="RESTDB_BASE")
    restdb_collection: str | None = Field(None, alias="RESTDB_COLLECTION")
    restdb_api_key: str | None = Field(None, alias="RESTDB_API_KEY")
    app_shared_token: str | None = Field(
        None,
        alias="APP_SHARED_TOKEN",
        description="Optional shared secret required in x-app-token on /api calls.",
    )
    frame_ancestor: str = Field(
        "https://packetfusioncrm.crm.dynamics.com",
        alias="FRAME_ANCESTOR",
        description="The single origin allowed to embed the page in an iframe.",
    )
    host: str = Field("0.0.0.0", alias="APP_HOST")
    port: int = Field(8000, alias="APP_PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @property
    def token_gate_enabled(self) -> bool:
        return bool(self.app_shared_token)

    def missing_store_settings(self) -> List[str]:
        """Return env var names of the store settings that are unset or blank."""
        required = {
            "RESTDB_BASE": self.restdb_base,
            "RESTDB_COLLECTION": self.restdb_collection,
            "RESTDB_API_KEY": self.restdb_api_key,
        }
        return [name for name, value in required.items() if not (value or "").strip()]

    def require_store_settings(self) -> None:
        missing = self.missing_store_settings()
        if missing:
            raise ConfigurationError(f"Missing env vars: {', '.join(missing)}")


def get_settings() -> Settings:
    """Build a settings instance from the current environment."""
    return Settings()
