"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.exceptions import MissingConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str

    # Development mode - bypasses auth for local development
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")

    # Web app URL - used to build the Telegram account linking link
    frontend_url: str = Field(
        default="http://localhost:5173",
        validation_alias="FRONTEND_URL",
    )

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    # Chat platform credentials - optional at startup, required when a webhook uses them
    telegram_bot_token: str | None = Field(default=None, validation_alias="TELEGRAM_BOT_TOKEN")
    whapi_api_token: str | None = Field(default=None, validation_alias="WHAPI_API_TOKEN")
    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")

    # Outbound endpoints
    telegram_api_base: str = Field(
        default="https://api.telegram.org",
        validation_alias="TELEGRAM_API_BASE",
    )
    whapi_api_base: str = Field(
        default="https://gate.whapi.cloud",
        validation_alias="WHAPI_API_BASE",
    )
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        validation_alias="GEMINI_API_BASE",
    )
    gemini_model: str = Field(default="gemini-2.0-flash-exp", validation_alias="GEMINI_MODEL")

    # AI sampling parameters
    ai_temperature: float = Field(default=0.7, validation_alias="AI_TEMPERATURE")
    ai_max_output_tokens: int = Field(default=1000, validation_alias="AI_MAX_OUTPUT_TOKENS")

    # Timeout (seconds) for outbound HTTP calls
    http_timeout: float = Field(default=10.0, validation_alias="HTTP_TIMEOUT")

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE completely bypasses authentication, so it may only be used with
        a local (or in-memory SQLite) database.
        """
        if not self.dev_mode:
            return self

        parsed = urlparse(self.database_url)
        if parsed.scheme.startswith("sqlite"):
            return self

        hostname = parsed.hostname or ""
        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"DEV_MODE bypasses all authentication and must only be used locally.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    def require(self, field_name: str) -> str:
        """
        Return a secret that must be configured, e.g. a bot token.

        Raises:
            MissingConfigError: If the value is unset or empty.
        """
        value = getattr(self, field_name)
        if not value:
            raise MissingConfigError(field_name.upper())
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
