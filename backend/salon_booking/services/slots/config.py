# backend/salon_booking/services/slots/config.py
"""
Booking configuration for slots calculation.
"""

import re
from dataclasses import dataclass
from datetime import time
from functools import lru_cache

from ...config import settings

ALLOWED_STEPS = (5, 10, 15, 20, 30, 60)
TIME_PATTERN = re.compile(r"([01][0-9]|2[0-3]):([0-5][0-9])")


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for booking/slots system.

    Attributes:
        hold_ttl_seconds: Lifetime of a slot hold (180..600)
        default_min_advance_hours: Used when the service has no min_advance_hours
        default_max_advance_days: Used when the service has no max_advance_days
        slot_step_minutes: Fixed grid step, or None for back-to-back slots
            (step = duration + buffer_after). Applies to both the day view
            and the range view.
        max_range_days: Longest date range accepted by the availability query
    """
    hold_ttl_seconds: int = 300
    default_min_advance_hours: int = 0
    default_max_advance_days: int = 90
    slot_step_minutes: int | None = None
    max_range_days: int = 92

    def __post_init__(self):
        """Validate configuration."""
        if not 180 <= self.hold_ttl_seconds <= 600:
            raise ValueError(f"hold_ttl_seconds must be within 180..600, got {self.hold_ttl_seconds}")
        if self.slot_step_minutes is not None and self.slot_step_minutes not in ALLOWED_STEPS:
            raise ValueError(
                f"slot_step_minutes must be one of {ALLOWED_STEPS} or unset, got {self.slot_step_minutes}"
            )
        if self.default_min_advance_hours < 0 or self.default_max_advance_days < 0:
            raise ValueError("advance window defaults must not be negative")

    def step_for(self, duration_min: int, buffer_min: int) -> int:
        """Step between consecutive candidate starts, in minutes."""
        if self.slot_step_minutes:
            return self.slot_step_minutes
        return duration_min + buffer_min

    def min_advance_hours(self, service) -> int:
        if service.min_advance_hours is not None:
            return service.min_advance_hours
        return self.default_min_advance_hours

    def max_advance_days(self, service) -> int:
        if service.max_advance_days is not None:
            return service.max_advance_days
        return self.default_max_advance_days


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton, read from settings)."""
    return BookingConfig(
        hold_ttl_seconds=settings.hold_ttl_seconds,
        default_min_advance_hours=settings.default_min_advance_hours,
        default_max_advance_days=settings.default_max_advance_days,
        slot_step_minutes=settings.slot_step_minutes,
    )


# ── Time helpers ─────────────────────────────────────────────────────────


def parse_time_str(value: str) -> time:
    """Strict "HH:MM" parser for request input."""
    match = TIME_PATTERN.fullmatch(value)
    if not match:
        raise ValueError(f"Invalid time format: {value!r}, expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))
