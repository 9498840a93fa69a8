# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# The Settings class validates all values at startup, catching configuration
# errors early rather than at runtime.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        ...,
        description="Legacy HS256 secret used to verify Supabase access tokens"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (Celery + realtime relay)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker and websocket pub/sub"
    )

    # -------------------------------------------------------------------------
    # Stripe Configuration
    # -------------------------------------------------------------------------

    STRIPE_SECRET_KEY: str = Field(
        default="",
        description="Stripe secret API key"
    )

    STRIPE_WEBHOOK_SECRET: str = Field(
        default="",
        description="Signing secret for the single-promotion webhook endpoint"
    )

    STRIPE_WEBHOOK_SECRET_COMBOS: str = Field(
        default="",
        description="Signing secret for the combo/subscription webhook endpoint (falls back to STRIPE_WEBHOOK_SECRET)"
    )

    STRIPE_CURRENCY: str = Field(
        default="eur",
        description="Currency used for every checkout session and price"
    )

    CHECKOUT_EXPIRY_MINUTES: int = Field(
        default=30,
        ge=30,
        le=1440,
        description="Lifetime of a promotion checkout session"
    )

    # -------------------------------------------------------------------------
    # Marketplace Rules
    # -------------------------------------------------------------------------

    DEFAULT_COMMISSION_RATE: float = Field(
        default=0.10,
        ge=0.0,
        le=1.0,
        description="Commission rate used when platform_settings has none"
    )

    NEARBY_DEFAULT_RADIUS_KM: float = Field(
        default=50.0,
        gt=0,
        description="Default radius for the nearby braider search"
    )

    PROMOTION_EXPIRY_WARNING_DAYS: int = Field(
        default=2,
        ge=1,
        le=30,
        description="Days before end_date at which an expiring notice is sent"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    APP_URL: str = Field(
        default="http://localhost:3000",
        description="Public frontend URL used for checkout redirects"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    CRON_SECRET: str = Field(
        default="",
        description="Shared secret for scheduler-triggered endpoints (X-Cron-Secret header)"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://tranca.pt" -> ["http://localhost:3000", "https://tranca.pt"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def combo_webhook_secret(self) -> str:
        """Signing secret for combo webhooks."""
        return self.STRIPE_WEBHOOK_SECRET_COMBOS or self.STRIPE_WEBHOOK_SECRET

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
