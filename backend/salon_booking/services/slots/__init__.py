# backend/salon_booking/services/slots/__init__.py
"""
Slots calculation module.

calendar   → open intervals per day (working hours ∩ staff schedule − break − blocks)
occupancy  → bookings + live holds of a staff member
calculator → lazy DaySlots over open intervals minus occupancy
"""

from .config import BookingConfig, get_booking_config
from .intervals import Interval, overlaps, find_conflict
from .calendar import CalendarRules, load_calendar_rules, local_to_utc, day_window, tenant_zone
from .occupancy import load_occupied
from .calculator import DaySlots
from .availability import booking_window, build_day_slots, compute_day_slots, find_unavailable_dates

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "Interval",
    "overlaps",
    "find_conflict",
    "CalendarRules",
    "load_calendar_rules",
    "local_to_utc",
    "day_window",
    "tenant_zone",
    "load_occupied",
    "DaySlots",
    "booking_window",
    "build_day_slots",
    "compute_day_slots",
    "find_unavailable_dates",
]
