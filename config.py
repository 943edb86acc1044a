import os
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = ""
    ENVIRONMENT: str = "development"

    # Connection pool (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # Checkout rules
    SHIPPING_FEE: float = 50.0  # Flat fee, not weight/distance based
    DELIVERY_DAYS: int = 7  # Expected delivery = order date + 7 days
    RETURN_WINDOW_DAYS: int = 30  # Returns accepted up to 30 days after ordering
    MIN_CANCEL_REASON_LENGTH: int = 10

    ALLOWED_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        # Use absolute path to make sure .env is found
        env_file=os.path.join(os.path.dirname(__file__), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Create the settings instance
settings = Settings()
