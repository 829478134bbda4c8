from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    SALON_API_BASE_URL: str | None = None
    SALON_API_TIMEOUT_SECONDS: float = 10.0
    SALON_TIMEZONE: str = "Asia/Colombo"

    BOOKING_WINDOW_DAYS: int = 7
    RESCHEDULE_LOCKOUT_HOURS: float = 24
    MIN_BOOKING_LEAD_MINUTES: int = 0

    SESSION_STORE_PROVIDER: str = "memory"
    SESSION_DATA_DIR: str = "./data/sessions"
    SESSION_IDLE_SECONDS: float = 1800


settings = Settings()
