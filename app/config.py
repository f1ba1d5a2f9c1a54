from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.domain.constants import CANCELLATION_REASON_MIN_LENGTH, DEFAULT_CURRENCY


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str | None = None  # e.g. sqlite+aiosqlite:///./laundry.db
    use_in_memory: bool = True
    stripe_api_key: str | None = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str | None = None
    stripe_webhook_tolerance_seconds: int = 300
    stripe_max_network_retries: int = 2
    currency: str = DEFAULT_CURRENCY
    app_base_url: str = "http://localhost:3000"
    notification_webhook_url: str | None = None
    notification_timeout_seconds: float = 5.0
    cancellation_reason_min_length: int = CANCELLATION_REASON_MIN_LENGTH
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
