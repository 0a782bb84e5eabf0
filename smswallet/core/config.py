"""
smswallet/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, OTP/PIN limits, queue retention, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="smswallet",
        description="MongoDB database name"
    )

    # Two-factor challenge
    OTP_LENGTH: int = Field(
        default=6,
        description="Number of digits in a one-time code"
    )
    OTP_EXPIRY_SECONDS: int = Field(
        default=300,
        description="Seconds before an issued OTP stops being accepted"
    )
    MAX_FAILED_PIN_ATTEMPTS: int = Field(
        default=3,
        description="Consecutive wrong PINs before the session locks"
    )
    MAX_FAILED_OTP_ATTEMPTS: int = Field(
        default=5,
        description="Wrong OTPs before the pending command is cancelled"
    )
    PIN_HASH_TIME_COST: int = Field(
        default=3,
        description="argon2 passes used when hashing PINs"
    )
    PIN_HASH_MEMORY_COST: int = Field(
        default=65536,
        description="argon2 memory in KiB used when hashing PINs"
    )
    SESSION_UPDATE_RETRIES: int = Field(
        default=5,
        description="Compare-and-set retries for a session update"
    )

    # Command parsing
    DEFAULT_COUNTRY: str = Field(
        default="IN",
        description="Region used to parse phone numbers without a country code"
    )
    DEFAULT_FIAT_CURRENCY: str = Field(
        default="INR",
        description="Currency assumed for PAY and REQUEST when none is given"
    )
    DEFAULT_TOKEN: str = Field(
        default="PYUSD",
        description="Token assumed for SELL and CLUB DEPOSIT when none is given"
    )

    # Outbound SMS queue
    QUEUE_MAX_ATTEMPTS: int = Field(
        default=3,
        description="Delivery attempts before a message is marked failed"
    )
    QUEUE_SENT_RETENTION_SECONDS: int = Field(
        default=300,
        description="How long sent messages stay visible before purge"
    )
    QUEUE_FAILED_RETENTION_SECONDS: int = Field(
        default=3600,
        description="How long failed messages stay visible before purge"
    )
    QUEUE_DEFAULT_POLL_LIMIT: int = Field(
        default=10,
        description="Messages returned per gateway poll when no limit is given"
    )

    # SMS gateway
    GATEWAY_API_KEY: Optional[str] = Field(
        default=None,
        description="Shared secret the SMS gateway sends in X-API-Key"
    )

    # Wallet backend
    WALLET_BACKEND_URL: Optional[str] = Field(
        default=None,
        description="Base URL of the wallet backend API; unset disables wallet commands"
    )
    WALLET_BACKEND_API_KEY: Optional[str] = Field(
        default=None,
        description="API key sent to the wallet backend in X-API-Key"
    )
    WALLET_BACKEND_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for a single wallet backend request"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator(
        "OTP_LENGTH",
        "OTP_EXPIRY_SECONDS",
        "MAX_FAILED_PIN_ATTEMPTS",
        "MAX_FAILED_OTP_ATTEMPTS",
        "PIN_HASH_TIME_COST",
        "PIN_HASH_MEMORY_COST",
        "SESSION_UPDATE_RETRIES",
        "QUEUE_MAX_ATTEMPTS",
        "QUEUE_SENT_RETENTION_SECONDS",
        "QUEUE_FAILED_RETENTION_SECONDS",
        "QUEUE_DEFAULT_POLL_LIMIT",
    )
    @classmethod
    def validate_positive(cls, v: int, info: ValidationInfo) -> int:
        """Limits and durations must be positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return v

    @field_validator("DEFAULT_COUNTRY")
    @classmethod
    def validate_country(cls, v: str) -> str:
        """Region codes are two uppercase letters (ISO 3166-1)."""
        v = v.strip().upper()
        if len(v) != 2 or not v.isalpha():
            raise ValueError("DEFAULT_COUNTRY must be a two-letter region code")
        return v

    @field_validator("GATEWAY_API_KEY")
    @classmethod
    def validate_gateway_key(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Ensure the gateway key is set in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("GATEWAY_API_KEY is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.MONGODB_DB_NAME:
        errors.append("MONGODB_DB_NAME is required")

    if settings.OTP_LENGTH < 4:
        errors.append("OTP_LENGTH must be at least 4 digits")

    # Production-specific validations
    if settings.is_production:
        if not settings.GATEWAY_API_KEY:
            errors.append("GATEWAY_API_KEY is required in production")
        if settings.DEBUG:
            errors.append("DEBUG must be disabled in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
