"""Application configuration"""

from dataclasses import dataclass
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class BillingConfig:
    """
    Immutable billing configuration handed to the billing services.

    WHY: Services receive their URLs and secrets through the constructor
    instead of reading module globals, so each request works from the same
    read-only snapshot and tests can build services with their own values.
    """

    api_key: str
    webhook_secret: str
    success_url: str
    cancel_url: str
    billing_return_url: str
    webhook_tolerance: int = 300
    api_version: Optional[str] = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    PROJECT_NAME: str = "Billing Bridge"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8090

    # Security
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 1440  # 24 hours

    # Database
    DATABASE_URL: str

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WHSEC: str = ""
    STRIPE_SUCCESS_URL: str = ""
    STRIPE_CANCEL_URL: str = ""
    STRIPE_BILLING_RETURN_URL: str = ""
    STRIPE_WEBHOOK_TOLERANCE: int = 300  # seconds
    STRIPE_API_VERSION: Optional[str] = None

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    def billing_config(self) -> BillingConfig:
        """Snapshot the Stripe settings into a BillingConfig."""
        return BillingConfig(
            api_key=self.STRIPE_SECRET_KEY,
            webhook_secret=self.STRIPE_WHSEC,
            success_url=self.STRIPE_SUCCESS_URL,
            cancel_url=self.STRIPE_CANCEL_URL,
            billing_return_url=self.STRIPE_BILLING_RETURN_URL,
            webhook_tolerance=self.STRIPE_WEBHOOK_TOLERANCE,
            api_version=self.STRIPE_API_VERSION,
        )


settings = Settings()
