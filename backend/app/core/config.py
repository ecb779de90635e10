"""
Application settings for the reservation backend
Loaded from environment variables and an optional .env file
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "WNY Black Car"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["*"]

    # Firestore
    USE_MOCK_FIREBASE: bool = False
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None
    FIREBASE_CREDENTIALS_JSON: Optional[str] = None

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    APP_URL: str = "http://localhost:3000"

    # Concierge text generation
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_TIMEOUT_SECONDS: float = 8.0

    # Admin PIN gate
    ADMIN_PIN: str = "1844"
    ADMIN_SESSION_TTL_MINUTES: int = 12 * 60

    # Booking drafts
    DRAFT_TTL_MINUTES: int = 120


settings = Settings()
