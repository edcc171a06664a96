"""
Configuration settings for the application
"""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Normalized plan IDs
PLAN_STARTER = "starter"
PLAN_GOLD = "gold"
PLAN_PLATINUM = "platinum"
PLAN_ENTERPRISE = "enterprise"

# Billing intervals
INTERVAL_MONTH = "month"
INTERVAL_YEAR = "year"
INTERVAL_LIFETIME = "lifetime"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Core authentication and security
    jwt_secret_key: Optional[str] = Field(default=None, alias="JWT_SECRET_KEY")

    # Stripe billing configuration
    stripe_secret_key: Optional[str] = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = Field(default=None, alias="STRIPE_WEBHOOK_SECRET")
    stripe_product_starter: Optional[str] = Field(default="prod_S251guGbh50tje", alias="STRIPE_PRODUCT_STARTER")
    stripe_product_gold: Optional[str] = Field(default="prod_S252Aj8D5tFfXg", alias="STRIPE_PRODUCT_GOLD")
    stripe_product_platinum: Optional[str] = Field(default="prod_S2537v7mpccHQI", alias="STRIPE_PRODUCT_PLATINUM")

    # Skyler (OpenAI chat completions)
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")

    # Infrastructure configuration
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./willtank.db", alias="DATABASE_URL")
    uploads_dir: str = Field(default="./uploads", alias="UPLOADS_DIR")
    rate_limit_per_minute: int = Field(default=60, alias="RATE_LIMIT_PER_MINUTE")

    # Outgoing email
    smtp_host: Optional[str] = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: Optional[str] = Field(default=None, alias="SMTP_USER")
    smtp_password: Optional[str] = Field(default=None, alias="SMTP_PASS")
    smtp_from: str = Field(default="WillTank <no-reply@willtank.com>", alias="SMTP_FROM")
    support_email: str = Field(default="support@willtank.com", alias="SUPPORT_EMAIL")

    # Frontend configuration
    frontend_url: Optional[str] = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Render.com deployment configuration
    render: Optional[str] = Field(default=None, alias="RENDER")
    render_external_url: Optional[str] = Field(default=None, alias="RENDER_EXTERNAL_URL")
    render_service_name: Optional[str] = Field(default=None, alias="RENDER_SERVICE_NAME")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")


# Instantiate settings object
settings = Settings()

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.render) or bool(settings.env and settings.env.lower() == "production")


def get_uploads_dir() -> Path:
    """Root directory for stored will documents and video testimonies."""
    path = Path(settings.uploads_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path
