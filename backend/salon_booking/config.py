# backend/salon_booking/config.py

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repository root


class Settings(BaseSettings):
    database_url: str
    redis_url: str

    log_level: str = "INFO"

    # Slot policy
    hold_ttl_seconds: int = Field(default=300, ge=180, le=600)
    default_min_advance_hours: int = 0
    default_max_advance_days: int = 90
    slot_step_minutes: int | None = None  # None = back-to-back (duration + buffer)
    widget_booking_status: Literal["pending", "confirmed"] = "confirmed"

    # Background loops (hold reaper, reminders, notification consumer)
    background_tasks_enabled: bool = True
    hold_reaper_interval: int = 60
    reminder_check_interval: int = 900

    rate_limit_enabled: bool = True

    # External collaborators
    turnstile_secret_key: str = ""
    resend_api_key: str = ""
    email_from: str = "Salon Booking <no-reply@example.com>"
    app_base_url: str = "http://localhost:3000"
    cron_secret: str = ""

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @field_validator("slot_step_minutes", mode="before")
    @classmethod
    def empty_step_is_none(cls, v):
        if v in ("", "0", 0):
            return None
        return v

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
