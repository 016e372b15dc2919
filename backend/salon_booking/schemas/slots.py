# backend/salon_booking/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import date
from pydantic import BaseModel, Field


class SlotsDayResponse(BaseModel):
    """Bookable start times for one day."""
    date: date
    slots: list[str] = Field(description='Ordered wall-clock starts, "HH:MM"')

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    """Dates of a range without any bookable start."""
    date_from: date = Field(serialization_alias="from")
    date_to: date = Field(serialization_alias="to")
    unavailable_dates: list[date]

    model_config = {"from_attributes": True}
