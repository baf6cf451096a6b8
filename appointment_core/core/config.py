"""Application configuration with environment variables."""

from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

from appointment_core.core import constants


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./appointments.db"

    # Business timezone (all scheduled_at values are wall-clock times in this zone)
    BUSINESS_TIMEZONE: str = "America/Los_Angeles"

    # Slot picker working window
    SLOT_START_HOUR: int = constants.SLOT_START_HOUR
    SLOT_END_HOUR: int = constants.SLOT_END_HOUR
    SLOT_INTERVAL_MINUTES: int = constants.SLOT_INTERVAL_MINUTES
    DEFAULT_DURATION_MINUTES: int = constants.DEFAULT_DURATION_MINUTES

    # Quick reschedule window (days shown per page)
    QUICK_RESCHEDULE_DAYS: int = constants.QUICK_RESCHEDULE_DAYS

    # Recurrence
    MAX_RECURRENCE_OCCURRENCES: int = constants.MAX_RECURRENCE_OCCURRENCES
    # Delete the series parent when the child bulk insert fails
    RECURRENCE_COMPENSATING_CLEANUP: bool = False

    # External calendar sync hook (fire-and-forget, empty = disabled)
    CALENDAR_SYNC_URL: str = ""
    CALENDAR_SYNC_TOKEN: str = ""
    CALENDAR_SYNC_TIMEOUT_SECONDS: float = 10.0
    # Retries for 429/5xx and transport errors (exponential backoff with jitter)
    CALENDAR_SYNC_MAX_ATTEMPTS: int = 3
    CALENDAR_SYNC_RETRY_BASE_DELAY: float = 0.5
    CALENDAR_SYNC_RETRY_MAX_DELAY: float = 4.0

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def business_tz(self) -> ZoneInfo:
        """Configured business timezone, falling back to UTC on bad names."""
        try:
            return ZoneInfo(self.BUSINESS_TIMEZONE)
        except Exception:
            return ZoneInfo("UTC")

    @property
    def recurrence_occurrence_cap(self) -> int:
        """Series size limit; the environment can lower it but never above 365."""
        return max(1, min(self.MAX_RECURRENCE_OCCURRENCES, constants.MAX_RECURRENCE_OCCURRENCES))

    @property
    def calendar_sync_enabled(self) -> bool:
        return bool(self.CALENDAR_SYNC_URL)


settings = Settings()
