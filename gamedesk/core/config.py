from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    BOOKING_SERVICE_BASE_URL: str | None = None
    VENDOR_ID: int | None = None
    HTTP_TIMEOUT_SECONDS: float = 10.0

    BUSINESS_TIMEZONE: str = "Asia/Kolkata"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Each regular-flow slot is a fixed unit of this many hours (pass redemption).
    SLOT_UNIT_HOURS: float = 0.5
    PHONE_DIGITS: int = 10
    CUSTOMER_CACHE_TTL_SECONDS: int = 600
    DEFAULT_OVERTIME_RATE: float = 100.0


settings = Settings()
