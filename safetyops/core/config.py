"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Logging (CLI / scheduled entrypoints)
    LOG_LEVEL: str = "INFO"

    # Frontend (used to build incident links for delivery intents)
    APP_URL: str = "http://localhost:3000"

    # Notifications
    CRITICAL_FAST_PATH_EMAIL: bool = False  # Also email critical recipients
    NOTIFICATION_DEDUPE_WINDOW_HOURS: int = 1

    # Certificates
    DEFAULT_CERTIFICATE_EXPIRY_WARNING_DAYS: int = 30

    @property
    def is_sqlite(self) -> bool:
        """True when DATABASE_URL points at SQLite (tests, local tooling)."""
        return self.DATABASE_URL.startswith("sqlite")

    def incident_url(self, incident_id: object) -> str:
        """Deep link to an incident in the dashboard."""
        return f"{self.APP_URL.rstrip('/')}/dashboard/ai-safety/{incident_id}"


settings = Settings()
