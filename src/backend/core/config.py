"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "E-Voting"
    APP_ENV: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str = ""  # Required - keys the OTP hash

    # Database - PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "evoting"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "evoting"
    DATABASE_URL: str | None = None  # Overrides the POSTGRES_* settings when set
    DB_ECHO: bool = False

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_required_secrets(cls, v: str, info: Any) -> str:
        """Validate that required secrets are set."""
        if not v:
            raise ValueError(f"{info.field_name} must be set in environment")
        return v

    @property
    def database_url(self) -> str:
        """Connection URL for the async engine."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Voter verification (OTP)
    OTP_LENGTH: int = 6
    OTP_EXPIRY_SECONDS: int = 300  # 5 minutes
    OTP_RESEND_COOLDOWN_SECONDS: int = 60

    # Ballot tokens
    BALLOT_TOKEN_BYTES: int = 32  # 256 bits of entropy

    # Azure Communication Services (email + SMS delivery of one-time codes)
    AZURE_COMMUNICATION_CONNECTION_STRING: str | None = None
    AZURE_EMAIL_SENDER_ADDRESS: str | None = None
    AZURE_COMMUNICATION_SENDER_NUMBER: str | None = None
    SMS_DEFAULT_COUNTRY_CODE: str = "+256"

    # Field-Level PII Encryption
    # Base64-encoded 256-bit AES key for encrypting voter contact details
    # Generate with: python -c "from core.encryption import generate_encryption_key; print(generate_encryption_key())"
    FIELD_ENCRYPTION_KEY: str | None = None

    # Shared secret for the election administration endpoints
    ADMIN_API_KEY: str | None = None

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        import json

        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Background jobs
    ENABLE_BACKGROUND_JOBS: bool = True
    VERIFICATION_SWEEP_MINUTES: int = 5


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
