"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like api_keys), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Coaching Client API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1,dev-key-2",
        description="Comma-separated API keys. Using a list enables key rotation without downtime."
    )

    # Client records
    snapshot_path: Optional[str] = Field(
        default=None,
        description="JSON snapshot of all clients. Loaded at startup and written at shutdown when set."
    )
    expiring_days_default: int = Field(
        default=30,
        ge=0,
        description="Look-ahead window, in days, for the expiring memberships report."
    )

    # Identity
    password_min_length: int = Field(
        default=6,
        ge=1,
        description="Minimum password length for client accounts."
    )
    password_hash_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt cost factor for stored password hashes. Tests can lower this to 4."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def api_keys_list(self) -> list[str]:
        """Parse comma-separated API keys into a list."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def effective_log_level(self) -> str:
        """The configured level, or INFO when LOG_LEVEL is not a known level."""
        level = self.log_level.upper()
        return level if level in LOG_LEVELS else "INFO"

    def validate_required_fields(self) -> list[str]:
        """
        Validate settings that Pydantic can't check on its own.

        Returns list of problems, empty when the configuration is usable.
        """
        missing = []

        if not self.api_keys_list:
            missing.append("API_KEYS")

        if self.log_level.upper() not in LOG_LEVELS:
            missing.append("LOG_LEVEL (unknown level)")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
